"""Control channel manager.

The control channel is the first connection the client makes. The
backend uses it to announce the machine that will serve the session
channel and to publish a one-shot snapshot of the reachable peers. The
user's connection settings go back over it until the session channel is
open; after that, lifecycle notices about the session channel are
echoed on it so the backend can tell whether the handoff worked.
"""

from __future__ import annotations

import asyncio
import logging

from tsterm.channel.base import ChannelManager
from tsterm.channel.errors import ChannelError
from tsterm.channel.session import SessionChannel
from tsterm.domain.models import LifecycleEvent, PeerInfo, SessionTarget, sort_peers
from tsterm.protocol.codec import Envelope, MessageType
from tsterm.terminal.writer import OutputWriter
from tsterm.ui.base import Dialog, DialogHost

logger = logging.getLogger(__name__)

# Prefix of the info line naming the session host, e.g.
# "Tailscale machine ts-term-1a2b at 100.64.0.7 fd7a:115c::7"
MACHINE_ANNOUNCEMENT = "Tailscale machine"

DEFAULT_CONNECT_DELAY = 1.0

_LIFECYCLE_MESSAGES = {
    LifecycleEvent.OPENED: MessageType.WS_OPENED,
    LifecycleEvent.ERROR: MessageType.WS_ERROR,
}


class ControlChannel(ChannelManager):
    """Owns the control WebSocket, the peer snapshot and the session endpoint."""

    name = "control"

    def __init__(
        self,
        url: str,
        writer: OutputWriter,
        dialogs: DialogHost,
        session: SessionChannel,
        secure: bool = False,
        connect_delay: float = DEFAULT_CONNECT_DELAY,
        open_timeout: float = 10.0,
        origin: str | None = None,
    ) -> None:
        super().__init__(writer, dialogs, open_timeout=open_timeout, origin=origin)
        self._url = url
        self._session = session
        self._scheme = "wss" if secure else "ws"
        self._connect_delay = connect_delay
        self._peers: tuple[PeerInfo, ...] = ()
        self._session_url: str | None = None
        self._pending_connect: asyncio.Task[None] | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def peers(self) -> tuple[PeerInfo, ...]:
        """The latest peer snapshot, sorted by short name."""
        return self._peers

    @property
    def session_url(self) -> str | None:
        """Session endpoint announced by the backend, if any."""
        return self._session_url

    @property
    def has_pending_connect(self) -> bool:
        return self._pending_connect is not None and not self._pending_connect.done()

    def start(self) -> None:
        """Open the control channel."""
        self._connect(self._url)

    async def close(self) -> None:
        if self._pending_connect is not None:
            self._pending_connect.cancel()
            self._pending_connect = None
        await super().close()

    async def submit_config(self, target: SessionTarget) -> None:
        """Send the user's session target to whichever channel is live.

        While the session channel is not open the settings go over the
        control channel, and the session channel is opened after a short
        delay that gives the backend time to start serving it. Once the
        session channel is open (a resubmission after an SSH error), the
        settings go there and nothing is scheduled.

        Raises:
            ChannelError: If the settings cannot be sent.
        """
        envelope = Envelope(type=MessageType.SSH_CONFIG, data=target.to_wire())
        if self._session.is_open:
            logger.info("Resubmitting session settings for %s on the session channel", target.address)
            await self._session.send(envelope)
            return

        await self.send(envelope)
        logger.info("Submitted session settings for %s:%d", target.address, target.port)
        if self.has_pending_connect:
            self._pending_connect.cancel()
        self._pending_connect = asyncio.create_task(
            self._connect_session_later(), name="tsterm-session-connect"
        )

    async def notify(self, event: LifecycleEvent) -> None:
        """Echo a session channel lifecycle event. Failures are ignored."""
        try:
            await self.send_message(_LIFECYCLE_MESSAGES[event])
        except ChannelError as e:
            logger.debug("Could not report session %s: %s", event.value, e)

    async def abandon_session(self) -> None:
        """Give up on the session after an SSH error the user will not retry."""
        channel: ChannelManager = self._session if self._session.is_open else self
        try:
            await channel.send_message(MessageType.WS_ERROR)
        except ChannelError as e:
            logger.debug("Could not report abandoned session: %s", e)
        self._writer.write_status("Session channel error.")

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    async def _on_open(self) -> None:
        self._writer.write_status("Control channel open.")

    async def _on_error(self, error: ChannelError) -> None:
        self._dialogs.close(Dialog.PROGRESS)
        self._writer.write_status("Control channel error.")

    async def _on_close(self, reason: str) -> None:
        self._dialogs.close(Dialog.PROGRESS)
        self._dialogs.close(Dialog.CONNECTION)
        self._writer.write_status(f"Control channel closed. {reason}".rstrip())

    async def _dispatch(self, envelope: Envelope) -> None:
        if envelope.type is MessageType.INFO:
            self._handle_info(envelope.data)
        elif envelope.type is MessageType.PEERS:
            self._handle_peers(envelope)
        else:
            logger.debug("Ignoring %s on control channel", envelope.type.value)

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    def _handle_info(self, text: str) -> None:
        if text.startswith(MACHINE_ANNOUNCEMENT):
            fields = text.split()
            if len(fields) > 2:
                self._session_url = f"{self._scheme}://{fields[2]}"
                logger.info("Session endpoint announced: %s", self._session_url)
                return
            logger.warning("Machine announcement without a host: %r", text)
        self._writer.write_status(text)

    def _handle_peers(self, envelope: Envelope) -> None:
        peers = envelope.payload()
        if self._peers:
            logger.info("Replacing peer snapshot of %d machines", len(self._peers))
        self._peers = sort_peers(peers)
        logger.info("Received %d peers", len(self._peers))
        self._dialogs.show_connection(self._peers)

    async def _connect_session_later(self) -> None:
        await asyncio.sleep(self._connect_delay)
        self._pending_connect = None
        if self._session_url is None:
            logger.error("No session endpoint announced, cannot open session channel")
            self._dialogs.close(Dialog.PROGRESS)
            self._writer.write_status("No session endpoint has been announced.")
            return
        self._session.open(self._session_url)
