"""Terminal surface module for tsterm.

The surface is where remote output is rendered and where keystrokes
and resizes come from. The output writer sits in front of it and keeps
synthetic status lines from merging into partial PTY lines.

Public API:
    TerminalSurface -- Abstract base class
    OutputWriter -- Newline-aware writer
    ConsoleTerminal -- Raw-mode stdin/stdout implementation
"""

from tsterm.terminal.base import TerminalSurface
from tsterm.terminal.writer import LINE_TERMINATOR, OutputWriter

__all__ = ["LINE_TERMINATOR", "OutputWriter", "TerminalSurface", "ConsoleTerminal"]


def __getattr__(name: str) -> type:
    """Lazy import for the tty-bound implementation."""
    if name == "ConsoleTerminal":
        from tsterm.terminal.console import ConsoleTerminal
        return ConsoleTerminal
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
