"""Terminal and IDE-terminal rule set."""

from screentrail.models.events import EventImportance
from screentrail.plugins.ruleset import (
    ContextRule,
    EventRule,
    RuleSet,
    TextRule,
)

TERMINAL_RULES = RuleSet(
    identifier="builtin.terminal",
    name="Terminal Parser",
    version="1.0.0",
    description="Commands, prompts, errors and paths in terminal emulators",
    supported_applications=(
        "com.apple.Terminal",
        "com.googlecode.iterm2",
        "com.github.wez.wezterm",
        "net.kovidgoyal.kitty",
        "io.alacritty",
        "com.microsoft.VSCode",
        "com.jetbrains.*",
    ),
    text_rules=(
        TextRule(
            semantic_type="prompt",
            pattern=r"(?P<user>[\w.-]+)@(?P<host>[\w.-]+):(?P<directory>\S*)\s*[$%#]",
            element_type="working_directory",
            value_group="directory",
        ),
        TextRule(
            semantic_type="command",
            pattern=r"^\s*(?:[\w.-]+@[\w.-]+:\S*\s*)?[$%#>]\s+(?P<command>\S.*)$",
            element_type="command",
            value_group="command",
        ),
        TextRule(
            semantic_type="command_not_found",
            pattern=r"(?P<name>[\w-]+): command not found",
            element_type="missing_command",
            value_group="name",
        ),
        TextRule(
            semantic_type="error_output",
            pattern=r"\b(?:error|fatal|traceback|exception|permission denied|no such file)\b",
            ignore_case=True,
            element_type="error",
        ),
        TextRule(
            semantic_type="exit_code",
            pattern=r"exit (?:code|status) (?P<code>\d+)",
            ignore_case=True,
            element_type="exit_code",
            value_group="code",
        ),
        TextRule(
            semantic_type="file_path",
            pattern=r"(?<![\w@])(?P<path>(?:~|\.{1,2})?/[\w.-]+(?:/[\w.-]+)+)",
            element_type="file_path",
            value_group="path",
        ),
        TextRule(
            semantic_type="git_branch",
            pattern=r"\bOn branch (?P<branch>[\w./-]+)",
            element_type="git_branch",
            value_group="branch",
        ),
    ),
    context_rules=(
        ContextRule(
            element_type="session_host",
            pattern=r"[\w.-]+@(?P<host>[\w.-]+)",
            value_group="host",
        ),
    ),
    event_rules=(
        EventRule(
            event_type="command_failed",
            pattern=r"command not found|exit (?:code|status) [1-9]\d*|\bfatal\b",
            category="error",
            subcategory="command",
            importance=EventImportance.HIGH,
        ),
        EventRule(
            event_type="command_executed",
            pattern=r"^\s*[$%#]\s+\S",
            category="interaction",
            subcategory="command",
            importance=EventImportance.MEDIUM,
        ),
    ),
    pair_fields=False,
    detect_buttons=False,
)