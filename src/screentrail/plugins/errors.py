"""Plugin error taxonomy."""

from typing import Literal

ExecutionFailure = Literal["timeout", "memory_budget", "exception"]


class PluginError(Exception):
    """Base exception for plugin errors."""

    def __init__(self, message: str, plugin_id: str | None = None):
        super().__init__(message)
        self.plugin_id = plugin_id


class PluginInitializationError(PluginError):
    """Plugin failed to start; it is excluded from dispatch for its lifetime."""


class PluginExecutionError(PluginError):
    """
    A single plugin call failed.

    The call's output is discarded, but the plugin stays eligible for
    future frames.
    """

    def __init__(
        self,
        message: str,
        plugin_id: str | None = None,
        reason: ExecutionFailure = "exception",
    ):
        super().__init__(message, plugin_id)
        self.reason = reason


class PluginManifestError(PluginError):
    """A plugin directory's manifest is missing, unreadable or invalid."""
