"""Tests for supported-application pattern matching."""

import pytest

from screentrail.plugins.patterns import matches_any, matches_application


class TestMatchesApplication:
    @pytest.mark.parametrize(
        "pattern, app_identifier, expected",
        [
            ("com.apple.Terminal", "com.apple.Terminal", True),
            ("com.apple.terminal", "com.apple.Terminal", True),
            ("com.apple.Terminal", "com.apple.TerminalPlus", False),
            ("com.google.*", "com.google.Chrome", True),
            ("com.google.*", "com.googlex", False),
            ("*", "anything.at.all", True),
            ("", "com.apple.Terminal", False),
            ("com.apple.*", "", False),
        ],
    )
    def test_patterns(self, pattern, app_identifier, expected):
        assert matches_application(pattern, app_identifier) is expected

    def test_matches_any(self):
        patterns = ("com.apple.Terminal", "com.jetbrains.*")

        assert matches_any(patterns, "com.jetbrains.pycharm")
        assert not matches_any(patterns, "com.microsoft.Word")
