"""Shared lifecycle for the control and session channel managers.

Each manager exclusively owns one WebSocket at a time and moves it
through an explicit state machine::

    idle -> connecting -> open -> errored -> closed
                  |          \\______________/^
                  \\-> errored|closed

A closed or errored manager may connect again, which starts a fresh
socket. Inbound frames are handled by a single receive task per socket,
so they are processed strictly in arrival order. Opening a new socket
while an old one is alive abandons the old one: its task is cancelled
and nothing it does afterwards touches the manager's state.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, WebSocketException
from websockets.typing import Origin

from tsterm.channel.errors import ChannelError
from tsterm.domain.models import ChannelState
from tsterm.protocol.codec import Envelope, MalformedEnvelope, MessageType, decode, encode
from tsterm.terminal.writer import OutputWriter
from tsterm.ui.base import DialogHost

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[ChannelState, frozenset[ChannelState]] = {
    ChannelState.IDLE: frozenset({ChannelState.CONNECTING}),
    ChannelState.CONNECTING: frozenset(
        {ChannelState.OPEN, ChannelState.ERRORED, ChannelState.CLOSED}
    ),
    ChannelState.OPEN: frozenset({ChannelState.ERRORED, ChannelState.CLOSED}),
    ChannelState.ERRORED: frozenset({ChannelState.CLOSED, ChannelState.CONNECTING}),
    ChannelState.CLOSED: frozenset({ChannelState.CONNECTING}),
}


class ChannelManager(ABC):
    """Owns one WebSocket channel and dispatches its envelopes.

    Subclasses implement the four lifecycle hooks; everything about
    connecting, receiving, sending and tearing down lives here.
    """

    name = "channel"

    def __init__(
        self,
        writer: OutputWriter,
        dialogs: DialogHost,
        open_timeout: float = 10.0,
        origin: str | None = None,
    ) -> None:
        self._writer = writer
        self._dialogs = dialogs
        self._open_timeout = open_timeout
        self._origin = origin
        self._state = ChannelState.IDLE
        self._socket: ClientConnection | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ChannelState.OPEN and self._socket is not None

    async def send(self, envelope: Envelope) -> None:
        """Send one envelope.

        Raises:
            ChannelError: If the channel is not open or the send fails.
        """
        socket = self._socket
        if socket is None or self._state is not ChannelState.OPEN:
            raise ChannelError(f"{self.name} channel is not open", channel=self.name)
        try:
            await socket.send(encode(envelope.type, envelope.data))
        except ConnectionClosed as e:
            raise ChannelError(f"{self.name} channel send failed: {e}", channel=self.name) from e
        logger.debug("Sent %s on %s channel", envelope.type.value, self.name)

    async def send_message(self, message_type: MessageType, data: str = "") -> None:
        """Build and send one envelope."""
        await self.send(Envelope(type=message_type, data=data))

    async def close(self) -> None:
        """Close the socket regardless of the current state."""
        task = self._task
        self._task = None
        self._socket = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._state in (ChannelState.CONNECTING, ChannelState.OPEN, ChannelState.ERRORED):
            self._transition(ChannelState.CLOSED)
        logger.debug("%s channel closed by client", self.name)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _on_open(self) -> None:
        ...

    @abstractmethod
    async def _on_error(self, error: ChannelError) -> None:
        ...

    @abstractmethod
    async def _on_close(self, reason: str) -> None:
        ...

    @abstractmethod
    async def _dispatch(self, envelope: Envelope) -> None:
        ...

    # ------------------------------------------------------------------
    # Socket lifecycle
    # ------------------------------------------------------------------

    def _transition(self, new: ChannelState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise ChannelError(
                f"Invalid {self.name} channel transition: {self._state.value} -> {new.value}",
                channel=self.name,
            )
        logger.debug("%s channel: %s -> %s", self.name, self._state.value, new.value)
        self._state = new

    def _connect(self, url: str) -> None:
        """Start connecting to ``url``, abandoning any previous socket."""
        self._abandon()
        self._transition(ChannelState.CONNECTING)
        self._task = asyncio.create_task(self._run(url), name=f"tsterm-{self.name}")

    def _abandon(self) -> None:
        task = self._task
        self._task = None
        self._socket = None
        if task is not None and not task.done():
            logger.info("Abandoning previous %s channel socket", self.name)
            task.cancel()
        if self._state in (ChannelState.CONNECTING, ChannelState.OPEN):
            self._transition(ChannelState.CLOSED)

    def _is_current(self) -> bool:
        return self._task is not None and asyncio.current_task() is self._task

    async def _run(self, url: str) -> None:
        logger.info("Connecting %s channel to %s", self.name, url)
        try:
            socket = await connect(
                url,
                origin=Origin(self._origin) if self._origin else None,
                open_timeout=self._open_timeout,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning("%s channel connect to %s failed: %s", self.name, url, e)
            if self._is_current():
                await self._fail(ChannelError(f"Cannot connect to {url}: {e}", channel=self.name))
                await self._finish("")
            return

        if not self._is_current():
            await socket.close()
            return

        self._socket = socket
        reason = ""
        try:
            self._transition(ChannelState.OPEN)
            logger.info("%s channel open", self.name)
            await self._on_open()
            try:
                async for raw in socket:
                    await self._receive(raw)
                reason = _close_reason(socket)
            except ConnectionClosedError as e:
                reason = e.rcvd.reason if e.rcvd is not None else ""
                if self._is_current():
                    await self._fail(
                        ChannelError(f"{self.name} channel lost: {e}", channel=self.name)
                    )
        except asyncio.CancelledError:
            await socket.close()
            raise

        if self._is_current():
            await self._finish(reason)

    async def _receive(self, raw: str | bytes) -> None:
        try:
            envelope = decode(raw)
        except MalformedEnvelope as e:
            logger.warning("Dropping malformed frame on %s channel: %s", self.name, e)
            return
        logger.debug("Received %s on %s channel", envelope.type.value, self.name)
        try:
            await self._dispatch(envelope)
        except ChannelError as e:
            logger.warning("Handling %s on %s channel failed: %s", envelope.type.value, self.name, e)
        except Exception:
            logger.exception("Error handling %s on %s channel", envelope.type.value, self.name)

    async def _fail(self, error: ChannelError) -> None:
        self._transition(ChannelState.ERRORED)
        await self._on_error(error)

    async def _finish(self, reason: str) -> None:
        self._socket = None
        self._transition(ChannelState.CLOSED)
        logger.info("%s channel closed: %s", self.name, reason or "no reason given")
        await self._on_close(reason)


def _close_reason(socket: ClientConnection) -> str:
    close = socket.protocol.close_rcvd
    return close.reason if close is not None else ""
