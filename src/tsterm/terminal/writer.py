"""Output writer that keeps status lines off partial PTY lines.

PTY output arrives in arbitrary chunks and often ends mid-line (a shell
prompt, for instance). The writer remembers whether the last thing it
emitted ended with a line terminator, and starts a fresh line before any
synthetic status text when it did not.
"""

from __future__ import annotations

from tsterm.terminal.base import TerminalSurface

LINE_TERMINATOR = "\r\n"


class OutputWriter:
    """Feeds text to a terminal surface and tracks the newline cursor."""

    def __init__(self, terminal: TerminalSurface) -> None:
        self._terminal = terminal
        self._on_newline = True

    @property
    def on_newline(self) -> bool:
        """True when the last emitted characters were a line terminator."""
        return self._on_newline

    def write(self, text: str) -> None:
        """Pass text through unchanged."""
        if not text:
            return
        self._terminal.write(text)
        self._on_newline = text.endswith(LINE_TERMINATOR)

    def write_status(self, text: str) -> None:
        """Write one self-contained status line."""
        line = text.rstrip("\r\n") + LINE_TERMINATOR
        if not self._on_newline:
            line = LINE_TERMINATOR + line
        self._terminal.write(line)
        self._on_newline = True
