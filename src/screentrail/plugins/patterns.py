"""Application identifier pattern matching."""

from collections.abc import Iterable

from screentrail.constants import PluginConstants as PC


def matches_application(pattern: str, app_identifier: str) -> bool:
    """
    Match an application identifier against one supported-application pattern.

    A pattern is either an exact identifier (``com.apple.Terminal``) or a
    prefix followed by a trailing wildcard (``com.jetbrains.*``). A lone
    ``*`` matches every application. Matching is case-insensitive.

    Example:
        matches_application("com.google.*", "com.google.Chrome")  # True
        matches_application("com.google.*", "com.googlex")        # False
    """
    pattern = pattern.strip().lower()
    app_identifier = app_identifier.strip().lower()

    if not pattern or not app_identifier:
        return False
    if pattern == PC.WILDCARD:
        return True
    if pattern.endswith(PC.WILDCARD):
        prefix = pattern[: -len(PC.WILDCARD)]
        return app_identifier.startswith(prefix)
    return pattern == app_identifier


def matches_any(patterns: Iterable[str], app_identifier: str) -> bool:
    return any(matches_application(p, app_identifier) for p in patterns)
