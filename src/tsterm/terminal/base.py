"""Abstract base class for terminal surfaces.

A terminal surface renders whatever text it is given, reports the
user's keystrokes and viewport resizes, and knows its own size. The
channel managers only ever see this interface, so the console
implementation can be swapped for an embedded emulator widget or a
test double without touching the session logic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from tsterm.domain.models import Geometry

logger = logging.getLogger(__name__)

DataCallback = Callable[[str], None]
ResizeCallback = Callable[[int, int], None]


class TerminalSurface(ABC):
    """Abstract interface for the screen and keyboard of the session.

    Example usage::

        async with ConsoleTerminal() as terminal:
            terminal.on_data(lambda data: print(repr(data)))
            terminal.write("hello\\r\\n")
    """

    def __init__(self) -> None:
        self._data_listeners: list[DataCallback] = []
        self._resize_listeners: list[ResizeCallback] = []

    @abstractmethod
    def write(self, text: str) -> None:
        """Render text, including escape sequences, at the cursor."""
        ...

    @abstractmethod
    def geometry(self) -> Geometry:
        """Return the current rows/cols and pixel size of the surface."""
        ...

    async def open(self) -> None:
        """Acquire the surface. The default implementation does nothing."""

    async def close(self) -> None:
        """Release the surface. Safe to call multiple times."""

    def on_data(self, callback: DataCallback) -> None:
        """Register a listener for keystrokes typed by the user."""
        self._data_listeners.append(callback)

    def on_resize(self, callback: ResizeCallback) -> None:
        """Register a listener called with ``(rows, cols)`` on resize."""
        self._resize_listeners.append(callback)

    def _emit_data(self, data: str) -> None:
        for callback in self._data_listeners:
            callback(data)

    def _emit_resize(self, rows: int, cols: int) -> None:
        logger.debug("Terminal resized to %dx%d", cols, rows)
        for callback in self._resize_listeners:
            callback(rows, cols)

    async def __aenter__(self) -> TerminalSurface:
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()
