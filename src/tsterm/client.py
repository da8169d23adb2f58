"""The terminal client that ties the two channels together.

Wires the terminal surface, the dialogs and the two channel managers:
keystrokes and resizes from the surface go to the session channel,
session lifecycle notices are echoed on the control channel, and the
user's dialog decisions are routed to whichever manager handles them.
"""

from __future__ import annotations

import asyncio
import logging

from tsterm.channel.control import ControlChannel
from tsterm.channel.errors import ChannelError, HostTrustPending
from tsterm.channel.session import SessionChannel
from tsterm.config.settings import Settings
from tsterm.domain.models import LifecycleEvent, SessionTarget
from tsterm.terminal.base import TerminalSurface
from tsterm.terminal.writer import OutputWriter
from tsterm.ui.base import Dialog, DialogActions, DialogHost

logger = logging.getLogger(__name__)

# Ctrl-] leaves the session locally instead of being sent to the remote shell
DETACH_KEY = "\x1d"

WELCOME = "Welcome to \x1b[1;3;32mtsterm\x1b[0m (press Ctrl-] to quit)\r\n"


class TerminalClient(DialogActions):
    """One interactive session: control channel first, then session channel.

    Example usage::

        async with TerminalClient(settings, terminal, dialogs) as client:
            await client.run()
    """

    def __init__(
        self,
        settings: Settings,
        terminal: TerminalSurface,
        dialogs: DialogHost,
        writer: OutputWriter | None = None,
    ) -> None:
        self._settings = settings
        self._terminal = terminal
        self._dialogs = dialogs
        self._writer = writer or OutputWriter(terminal)
        self._stopped = asyncio.Event()

        self._session = SessionChannel(
            self._writer,
            dialogs,
            terminal,
            on_lifecycle=self._on_session_lifecycle,
            resize_debounce=settings.session.resize_debounce,
            host_confirm_timeout=settings.session.host_confirm_timeout,
            open_timeout=settings.server.open_timeout,
            origin=settings.server.origin,
        )
        self._control = ControlChannel(
            settings.server.control_url,
            self._writer,
            dialogs,
            self._session,
            secure=settings.server.secure,
            connect_delay=settings.session.connect_delay,
            open_timeout=settings.server.open_timeout,
            origin=settings.server.origin,
        )

        terminal.on_data(self._on_keystroke)
        terminal.on_resize(self._session.on_resize)
        dialogs.bind(self)

    @property
    def control(self) -> ControlChannel:
        return self._control

    @property
    def session(self) -> SessionChannel:
        return self._session

    @property
    def writer(self) -> OutputWriter:
        return self._writer

    def start(self) -> None:
        """Greet the user and open the control channel."""
        self._writer.write(WELCOME)
        self._control.start()

    async def run(self) -> None:
        """Run the session until stop() is called."""
        self.start()
        await self._stopped.wait()
        logger.info("Client stopped")

    def stop(self) -> None:
        self._stopped.set()

    async def close(self) -> None:
        """Close both channels, whatever state they are in."""
        self._dialogs.close_all()
        await self._session.close()
        await self._control.close()
        logger.info("Both channels closed")

    async def __aenter__(self) -> TerminalClient:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Dialog actions
    # ------------------------------------------------------------------

    async def submit_config(self, target: SessionTarget) -> None:
        self._dialogs.show_progress()
        try:
            await self._control.submit_config(target)
        except ChannelError as e:
            logger.warning("Could not submit session settings: %s", e)
            self._dialogs.close(Dialog.PROGRESS)
            self._writer.write_status(f"Could not send connection settings: {e}")

    async def answer_host(self, accept: bool) -> None:
        self._dialogs.show_progress()
        try:
            await self._session.answer_host(accept)
        except ChannelError as e:
            logger.warning("Could not answer host confirmation: %s", e)
            self._dialogs.close(Dialog.PROGRESS)
            self._writer.write_status(f"Could not answer host confirmation: {e}")

    async def dismiss_error(self, retry: bool) -> None:
        if retry:
            self._dialogs.show_connection(self._control.peers)
            return
        await self._control.abandon_session()

    # ------------------------------------------------------------------
    # Surface and session events
    # ------------------------------------------------------------------

    def _on_keystroke(self, data: str) -> None:
        if data == DETACH_KEY:
            logger.info("Detach key pressed")
            self.stop()
            return
        try:
            self._session.send_input(data)
        except HostTrustPending as e:
            logger.debug("Keystroke refused: %s", e)
        except ChannelError as e:
            logger.debug("Keystroke dropped: %s", e)

    async def _on_session_lifecycle(self, event: LifecycleEvent) -> None:
        await self._control.notify(event)
