"""Dialog module for tsterm.

Public API:
    Dialog -- The named modal surfaces
    DialogHost -- Abstract base class for presenting them
    DialogActions -- Abstract receiver of the user's decisions
    ConsoleDialogs -- Prompt-based implementation for a tty
"""

from tsterm.ui.base import Dialog, DialogActions, DialogHost

__all__ = ["Dialog", "DialogActions", "DialogHost", "ConsoleDialogs"]


def __getattr__(name: str) -> type:
    """Lazy import for the tty-bound implementation."""
    if name == "ConsoleDialogs":
        from tsterm.ui.console import ConsoleDialogs
        return ConsoleDialogs
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
