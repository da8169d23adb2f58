"""Console terminal surface backed by the process's own tty.

Puts stdin into raw mode so every keystroke (including control keys) is
forwarded to the remote shell as typed, writes remote output straight to
stdout, and reports SIGWINCH as resize events. Line prompts for the
dialogs temporarily hand the tty back to cooked mode.
"""

from __future__ import annotations

import asyncio
import codecs
import fcntl
import io
import logging
import os
import shutil
import signal
import struct
import sys
import termios
import tty
from typing import TextIO

from tsterm.domain.models import Geometry
from tsterm.terminal.base import TerminalSurface

logger = logging.getLogger(__name__)

READ_SIZE = 1024


class ConsoleTerminal(TerminalSurface):
    """Raw-mode terminal surface on stdin/stdout."""

    def __init__(self, stdin_fd: int | None = None, stdout: TextIO | None = None) -> None:
        super().__init__()
        self._fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
        self._stdout = stdout or sys.stdout
        self._loop: asyncio.AbstractEventLoop | None = None
        self._saved_attrs: list | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._capturing = False
        self._pause_depth = 0
        # Bytes typed past the end of the last prompt answer
        self._typeahead = bytearray()

    @property
    def is_open(self) -> bool:
        return self._loop is not None

    async def open(self) -> None:
        """Enter raw mode and start forwarding keystrokes."""
        self._loop = asyncio.get_running_loop()
        if os.isatty(self._fd):
            self._saved_attrs = termios.tcgetattr(self._fd)
        self._loop.add_signal_handler(signal.SIGWINCH, self._on_winch)
        self._start_capture()
        logger.debug("Console terminal opened (tty=%s)", self._saved_attrs is not None)

    async def close(self) -> None:
        """Restore the original tty attributes."""
        if self._loop is None:
            return
        self._stop_capture()
        self._loop.remove_signal_handler(signal.SIGWINCH)
        self._loop = None
        self._pause_depth = 0
        logger.debug("Console terminal closed")

    def write(self, text: str) -> None:
        self._stdout.write(text)
        self._stdout.flush()

    def geometry(self) -> Geometry:
        """Measure the tty, including its pixel size when the tty reports it."""
        try:
            packed = fcntl.ioctl(
                self._stdout.fileno(), termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0)
            )
            rows, cols, x, y = struct.unpack("HHHH", packed)
            if rows and cols:
                return Geometry(rows=rows, cols=cols, x=x, y=y)
        except (OSError, ValueError, io.UnsupportedOperation):
            pass
        size = shutil.get_terminal_size()
        return Geometry(rows=size.lines, cols=size.columns)

    def pause_input(self) -> None:
        """Stop keystroke capture and return the tty to cooked mode."""
        self._pause_depth += 1
        if self._pause_depth == 1:
            self._stop_capture()

    def resume_input(self) -> None:
        """Undo one pause_input(); capture resumes when none remain."""
        if self._pause_depth == 0:
            return
        self._pause_depth -= 1
        if self._pause_depth == 0 and self._loop is not None:
            self._start_capture()

    async def prompt(self, text: str, echo: bool = True) -> str:
        """Show a prompt and read one line in cooked mode.

        Raises:
            EOFError: If stdin is closed before a line arrives.
        """
        self.pause_input()
        try:
            if not echo:
                self._set_echo(False)
            self.write(text)
            return await self._read_line()
        finally:
            if not echo:
                self._set_echo(True)
                self.write("\r\n")
            self.resume_input()

    def _start_capture(self) -> None:
        if self._capturing or self._loop is None:
            return
        if self._saved_attrs is not None:
            tty.setraw(self._fd, termios.TCSANOW)
        self._loop.add_reader(self._fd, self._on_readable)
        self._capturing = True

    def _stop_capture(self) -> None:
        if not self._capturing or self._loop is None:
            return
        self._loop.remove_reader(self._fd)
        if self._saved_attrs is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
        self._capturing = False

    def _set_echo(self, enabled: bool) -> None:
        if self._saved_attrs is None:
            return
        attrs = termios.tcgetattr(self._fd)
        if enabled:
            attrs[3] |= termios.ECHO
        else:
            attrs[3] &= ~termios.ECHO
        termios.tcsetattr(self._fd, termios.TCSADRAIN, attrs)

    def _on_readable(self) -> None:
        try:
            chunk = os.read(self._fd, READ_SIZE)
        except OSError as e:
            logger.warning("Console read failed: %s", e)
            return
        if not chunk:
            logger.info("Console input closed")
            self._stop_capture()
            return
        text = self._decoder.decode(chunk)
        if text:
            self._emit_data(text)

    async def _read_line(self) -> str:
        assert self._loop is not None
        if b"\n" not in self._typeahead:
            future: asyncio.Future[None] = self._loop.create_future()

            def on_readable() -> None:
                if future.done():
                    return
                try:
                    chunk = os.read(self._fd, READ_SIZE)
                except OSError as e:
                    future.set_exception(e)
                    return
                if not chunk:
                    future.set_exception(EOFError("stdin closed"))
                    return
                self._typeahead.extend(chunk)
                if b"\n" in chunk:
                    future.set_result(None)

            self._loop.add_reader(self._fd, on_readable)
            try:
                await future
            finally:
                self._loop.remove_reader(self._fd)
        end = self._typeahead.index(b"\n")
        line = bytes(self._typeahead[:end])
        del self._typeahead[: end + 1]
        return line.decode("utf-8", errors="replace").rstrip("\r")

    def _on_winch(self) -> None:
        geometry = self.geometry()
        self._emit_resize(geometry.rows, geometry.cols)
