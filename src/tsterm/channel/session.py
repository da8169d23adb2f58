"""Session channel manager.

The session channel is opened against the machine announced on the
control channel once the user has submitted a target. It carries the
SSH handshake (host-trust confirmation, login errors), then the live
terminal: keystrokes out, screen output in, and terminal geometry out
whenever the surface is resized.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from tsterm.channel.base import ChannelManager
from tsterm.channel.errors import ChannelError, HostTrustPending, SshError
from tsterm.domain.models import LifecycleEvent, SessionPhase
from tsterm.protocol.codec import Envelope, MessageType
from tsterm.terminal.base import TerminalSurface
from tsterm.terminal.writer import OutputWriter
from tsterm.ui.base import Dialog, DialogHost

logger = logging.getLogger(__name__)

LifecycleCallback = Callable[[LifecycleEvent], Awaitable[None]]

DEFAULT_RESIZE_DEBOUNCE = 0.5


class SessionChannel(ChannelManager):
    """Owns the session WebSocket and the SSH session phase."""

    name = "session"

    def __init__(
        self,
        writer: OutputWriter,
        dialogs: DialogHost,
        terminal: TerminalSurface,
        on_lifecycle: LifecycleCallback | None = None,
        resize_debounce: float = DEFAULT_RESIZE_DEBOUNCE,
        host_confirm_timeout: float | None = None,
        open_timeout: float = 10.0,
        origin: str | None = None,
    ) -> None:
        super().__init__(writer, dialogs, open_timeout=open_timeout, origin=origin)
        self._terminal = terminal
        self._on_lifecycle = on_lifecycle
        self._resize_debounce = resize_debounce
        self._host_confirm_timeout = host_confirm_timeout
        self._phase = SessionPhase.HANDSHAKE
        self._pending_host: str | None = None
        self._input: asyncio.Queue[str] = asyncio.Queue()
        self._input_task: asyncio.Task[None] | None = None
        self._resize_task: asyncio.Task[None] | None = None
        self._host_timer: asyncio.Task[None] | None = None
        self._handlers: dict[MessageType, Callable[[Envelope], Awaitable[None]]] = {
            MessageType.SSH_ERROR: self._handle_ssh_error,
            MessageType.SSH_HOST: self._handle_ssh_host,
            MessageType.SSH_SUCCESS: self._handle_ssh_success,
            MessageType.INFO: self._handle_info,
            MessageType.OUTPUT: self._handle_output,
        }

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    def open(self, url: str) -> None:
        """Connect to the session endpoint, replacing any previous socket."""
        self._reset_session()
        self._connect(url)

    async def close(self) -> None:
        """Close the socket and stop every timer."""
        self._reset_session()
        await super().close()

    async def answer_host(self, accept: bool) -> None:
        """Answer the backend's host-trust question.

        Raises:
            ChannelError: If no host confirmation is outstanding or the
                answer cannot be sent.
        """
        if self._phase is not SessionPhase.HOST_PENDING:
            raise ChannelError("No host confirmation is pending", channel=self.name)
        self._cancel(self._host_timer)
        self._host_timer = None
        await self.send_message(MessageType.SSH_HOST_ACTION, "yes" if accept else "no")
        logger.info("Host %s %s", self._pending_host, "accepted" if accept else "rejected")
        self._pending_host = None
        self._phase = SessionPhase.HANDSHAKE

    def send_input(self, data: str) -> None:
        """Relay one keystroke or sequence as an ``input`` envelope.

        Keystrokes are queued in order and sent by the input pump, one
        envelope per call.

        Raises:
            HostTrustPending: While a host-trust decision is outstanding.
            ChannelError: If the channel is not open or the session is not
                established yet.
        """
        if self._phase is SessionPhase.HOST_PENDING:
            raise HostTrustPending(self._pending_host or "", channel=self.name)
        if not self.is_open:
            raise ChannelError("session channel is not open", channel=self.name)
        if self._phase is not SessionPhase.ESTABLISHED:
            raise ChannelError("session is not established", channel=self.name)
        self._input.put_nowait(data)

    async def flush_input(self) -> None:
        """Wait until every queued keystroke has been handed to the socket."""
        await self._input.join()

    async def sync_size(self) -> bool:
        """Send the surface geometry. Returns False if there is no channel."""
        if not self.is_open:
            logger.debug("Skipping size sync, session channel is not open")
            return False
        geometry = self._terminal.geometry()
        await self.send_message(MessageType.SIZE, geometry.to_wire())
        logger.debug("Synced size %dx%d (%dx%d px)", geometry.cols, geometry.rows, geometry.x, geometry.y)
        return True

    def on_resize(self, rows: int, cols: int) -> None:
        """Schedule a size sync once resizing has been quiet for a while."""
        self._cancel(self._resize_task)
        self._resize_task = asyncio.create_task(self._debounced_resize())

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    async def _on_open(self) -> None:
        self._dialogs.close(Dialog.PROGRESS)
        self._input_task = asyncio.create_task(self._pump_input(), name="tsterm-session-input")
        await self._notify(LifecycleEvent.OPENED)
        self._writer.write_status("Session channel open.")

    async def _on_error(self, error: ChannelError) -> None:
        self._dialogs.close(Dialog.PROGRESS)
        await self._notify(LifecycleEvent.ERROR)
        self._writer.write_status("Session channel error.")

    async def _on_close(self, reason: str) -> None:
        self._reset_session()
        self._dialogs.close(Dialog.PROGRESS)
        self._dialogs.close(Dialog.ERROR)
        self._writer.write_status(f"Session channel closed. {reason}".rstrip())

    async def _dispatch(self, envelope: Envelope) -> None:
        self._dialogs.close(Dialog.PROGRESS)
        handler = self._handlers.get(envelope.type)
        if handler is None:
            logger.debug("Ignoring %s on session channel", envelope.type.value)
            return
        await handler(envelope)

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    async def _handle_ssh_error(self, envelope: Envelope) -> None:
        error = SshError(envelope.data)
        logger.info("Backend reported SSH failure: %s", error)
        self._dialogs.show_error(error)

    async def _handle_ssh_host(self, envelope: Envelope) -> None:
        host = envelope.data
        self._phase = SessionPhase.HOST_PENDING
        self._pending_host = host
        logger.info("Backend asks to trust host %s", host)
        self._dialogs.show_host_confirm(host)
        if self._host_confirm_timeout is not None:
            self._cancel(self._host_timer)
            self._host_timer = asyncio.create_task(self._expire_host_confirm())

    async def _handle_ssh_success(self, envelope: Envelope) -> None:
        self._dialogs.close_all()
        await self.sync_size()
        self._phase = SessionPhase.ESTABLISHED
        logger.info("SSH session established")

    async def _handle_info(self, envelope: Envelope) -> None:
        self._writer.write_status(envelope.data)

    async def _handle_output(self, envelope: Envelope) -> None:
        self._writer.write(envelope.data)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def _pump_input(self) -> None:
        while True:
            data = await self._input.get()
            try:
                await self.send_message(MessageType.INPUT, data)
            except ChannelError as e:
                logger.debug("Dropping keystroke: %s", e)
            finally:
                self._input.task_done()

    async def _debounced_resize(self) -> None:
        await asyncio.sleep(self._resize_debounce)
        try:
            await self.sync_size()
        except ChannelError as e:
            logger.warning("Size sync failed: %s", e)

    async def _expire_host_confirm(self) -> None:
        assert self._host_confirm_timeout is not None
        await asyncio.sleep(self._host_confirm_timeout)
        if self._phase is not SessionPhase.HOST_PENDING:
            return
        logger.warning("Host confirmation for %s timed out", self._pending_host)
        self._host_timer = None
        self._dialogs.close(Dialog.HOST_CONFIRM)
        self._writer.write_status("Host confirmation timed out.")
        try:
            await self.answer_host(False)
        except ChannelError as e:
            logger.warning("Could not reject host: %s", e)

    async def _notify(self, event: LifecycleEvent) -> None:
        if self._on_lifecycle is not None:
            await self._on_lifecycle(event)

    def _reset_session(self) -> None:
        for task in (self._input_task, self._resize_task, self._host_timer):
            self._cancel(task)
        self._input_task = None
        self._resize_task = None
        self._host_timer = None
        while not self._input.empty():
            self._input.get_nowait()
            self._input.task_done()
        self._phase = SessionPhase.HANDSHAKE
        self._pending_host = None

    @staticmethod
    def _cancel(task: asyncio.Task[None] | None) -> None:
        if task is not None and not task.done():
            task.cancel()
