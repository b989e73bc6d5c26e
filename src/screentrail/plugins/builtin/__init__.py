"""
Built-in rule-set plugins.

``BUILTIN_PLUGIN_FACTORIES`` maps a manifest ``type`` to the rule set it
instantiates; directory plugins reuse these with their own metadata.
"""

from collections.abc import Callable

from screentrail.plugins.builtin.productivity import PRODUCTIVITY_RULES
from screentrail.plugins.builtin.terminal import TERMINAL_RULES
from screentrail.plugins.builtin.web import WEB_RULES
from screentrail.plugins.ruleset import RuleSet, RuleSetPlugin

__all__ = [
    "BUILTIN_RULE_SETS",
    "PRODUCTIVITY_RULES",
    "TERMINAL_RULES",
    "WEB_RULES",
    "create_builtin_plugin",
]

BUILTIN_RULE_SETS: dict[str, RuleSet] = {
    "terminal": TERMINAL_RULES,
    "web": WEB_RULES,
    "productivity": PRODUCTIVITY_RULES,
}


def create_builtin_plugin(
    plugin_type: str, customize: Callable[[RuleSet], RuleSet] | None = None
) -> RuleSetPlugin:
    """
    Instantiate a built-in plugin by type.

    Args:
        plugin_type: One of BUILTIN_RULE_SETS keys
        customize: Optional transform applied to the rule set first

    Raises:
        ValueError: If the type is not known
    """
    if plugin_type not in BUILTIN_RULE_SETS:
        raise ValueError(
            f"Unknown plugin type: {plugin_type}. "
            f"Available: {list(BUILTIN_RULE_SETS.keys())}"
        )
    rule_set = BUILTIN_RULE_SETS[plugin_type]
    if customize is not None:
        rule_set = customize(rule_set)
    return RuleSetPlugin(rule_set)
