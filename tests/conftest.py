"""Shared test fixtures for the tsterm test suite.

Provides common fixtures used across unit and integration tests: a
recording terminal surface, a recording dialog host, an in-memory
socket, and channel managers wired to them.
"""

from __future__ import annotations

from typing import Sequence
from unittest.mock import AsyncMock

import pytest
from websockets.exceptions import ConnectionClosedOK

from tsterm.channel.base import ChannelManager
from tsterm.channel.control import ControlChannel
from tsterm.channel.errors import SshError
from tsterm.channel.session import SessionChannel
from tsterm.domain.models import ChannelState, Geometry, PeerInfo
from tsterm.protocol.codec import Envelope, decode
from tsterm.terminal.base import TerminalSurface
from tsterm.terminal.writer import OutputWriter
from tsterm.ui.base import Dialog, DialogHost


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeTerminal(TerminalSurface):
    """Terminal surface that records everything written to it."""

    def __init__(self, geometry: Geometry | None = None) -> None:
        super().__init__()
        self.output: list[str] = []
        self._geometry = geometry or Geometry(rows=24, cols=80, x=640, y=384)

    @property
    def text(self) -> str:
        return "".join(self.output)

    def write(self, text: str) -> None:
        self.output.append(text)

    def geometry(self) -> Geometry:
        return self._geometry

    def type(self, data: str) -> None:
        self._emit_data(data)

    def resize(self, rows: int, cols: int) -> None:
        self._geometry = Geometry(rows=rows, cols=cols, x=cols * 8, y=rows * 16)
        self._emit_resize(rows, cols)


class RecordingDialogs(DialogHost):
    """Dialog host that remembers what is showing and what was asked."""

    def __init__(self) -> None:
        super().__init__()
        self.showing: set[Dialog] = set()
        self.connection_peers: list[tuple[PeerInfo, ...]] = []
        self.hosts: list[str] = []
        self.errors: list[SshError] = []
        self.closed: list[Dialog] = []

    def show_connection(self, peers: Sequence[PeerInfo]) -> None:
        self.connection_peers.append(tuple(peers))
        self.showing.add(Dialog.CONNECTION)

    def show_progress(self) -> None:
        self.showing.add(Dialog.PROGRESS)

    def show_host_confirm(self, host: str) -> None:
        self.hosts.append(host)
        self.showing.add(Dialog.HOST_CONFIRM)

    def show_error(self, error: SshError) -> None:
        self.errors.append(error)
        self.showing.add(Dialog.ERROR)

    def close(self, dialog: Dialog) -> None:
        self.closed.append(dialog)
        self.showing.discard(dialog)


class FakeSocket:
    """Stand-in for a websockets ClientConnection that records sends."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False

    @property
    def envelopes(self) -> list[Envelope]:
        return [decode(message) for message in self.sent]

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True


async def attach(manager: ChannelManager, socket: FakeSocket) -> None:
    """Put a manager into the open state on a fake socket."""
    manager._socket = socket  # type: ignore[assignment]
    manager._state = ChannelState.OPEN
    await manager._on_open()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def writer(terminal: FakeTerminal) -> OutputWriter:
    return OutputWriter(terminal)


@pytest.fixture
def dialogs() -> RecordingDialogs:
    return RecordingDialogs()


@pytest.fixture
def lifecycle() -> AsyncMock:
    """Receiver for session lifecycle notices."""
    return AsyncMock()


@pytest.fixture
def session(
    writer: OutputWriter, dialogs: RecordingDialogs, terminal: FakeTerminal, lifecycle: AsyncMock
) -> SessionChannel:
    return SessionChannel(
        writer,
        dialogs,
        terminal,
        on_lifecycle=lifecycle,
        resize_debounce=0.02,
    )


@pytest.fixture
def control(
    writer: OutputWriter, dialogs: RecordingDialogs, session: SessionChannel
) -> ControlChannel:
    return ControlChannel(
        "ws://backend.test/ts",
        writer,
        dialogs,
        session,
        connect_delay=0.01,
    )


@pytest.fixture
def sample_peers_json() -> str:
    """A peers payload as the backend sends it, deliberately unsorted."""
    return (
        '[{"shortDomain": "workstation", "domain": "workstation.tail1234.ts.net.",'
        ' "ips": ["100.64.0.2", "fd7a:115c:a1e0::2"]},'
        ' {"shortDomain": "Laptop", "domain": "laptop.tail1234.ts.net.",'
        ' "ips": ["100.64.0.3"]}]'
    )


@pytest.fixture
def open_channel():
    """Return a coroutine that opens a manager on a fresh fake socket."""

    async def _open(manager: ChannelManager) -> FakeSocket:
        socket = FakeSocket()
        await attach(manager, socket)
        return socket

    return _open
