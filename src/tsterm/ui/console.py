"""Prompt-based dialogs for a console session.

Each dialog runs as its own asyncio task that reads answers line by
line from the console terminal; closing a dialog cancels its task. The
progress indicator is shown in the terminal title so it never moves
the cursor.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Coroutine, Sequence

from tsterm.channel.errors import SshError
from tsterm.domain.models import AddressKind, PeerInfo, SessionTarget
from tsterm.terminal.console import ConsoleTerminal
from tsterm.terminal.writer import OutputWriter
from tsterm.ui.base import Dialog, DialogHost

logger = logging.getLogger(__name__)

TITLE = "tsterm"


class ConsoleDialogs(DialogHost):
    """Presents the dialogs as prompts on the console terminal."""

    def __init__(
        self,
        terminal: ConsoleTerminal,
        writer: OutputWriter,
        default_port: int = 22,
        default_username: str = "",
    ) -> None:
        super().__init__()
        self._terminal = terminal
        self._writer = writer
        self._default_port = default_port
        self._default_username = default_username
        self._tasks: dict[Dialog, asyncio.Task[None]] = {}
        self._progress = False

    def is_showing(self, dialog: Dialog) -> bool:
        if dialog is Dialog.PROGRESS:
            return self._progress
        task = self._tasks.get(dialog)
        return task is not None and not task.done()

    def show_connection(self, peers: Sequence[PeerInfo]) -> None:
        self._start(Dialog.CONNECTION, self._connection(tuple(peers)))

    def show_progress(self) -> None:
        self._progress = True
        self._set_title(f"{TITLE} - connecting...")

    def show_host_confirm(self, host: str) -> None:
        self._start(Dialog.HOST_CONFIRM, self._host_confirm(host))

    def show_error(self, error: SshError) -> None:
        self._start(Dialog.ERROR, self._error(error))

    def close(self, dialog: Dialog) -> None:
        if dialog is Dialog.PROGRESS:
            if self._progress:
                self._progress = False
                self._set_title(TITLE)
            return
        task = self._tasks.pop(dialog, None)
        if task is not None and not task.done():
            logger.debug("Closing %s dialog", dialog.value)
            task.cancel()

    # ------------------------------------------------------------------
    # Dialog bodies
    # ------------------------------------------------------------------

    async def _connection(self, peers: tuple[PeerInfo, ...]) -> None:
        if peers:
            self._writer.write_status("Available machines:")
            for number, peer in enumerate(peers, start=1):
                self._writer.write_status(f"  [{number}] {peer.label}")
        while True:
            try:
                target = await self._ask_target(peers)
            except ValueError as e:
                self._writer.write_status(f"Invalid connection settings: {e}")
                continue
            break
        self._finish(Dialog.CONNECTION)
        await self.actions.submit_config(target)

    async def _ask_target(self, peers: tuple[PeerInfo, ...]) -> SessionTarget:
        default_address = ""
        if peers:
            choice = await self._terminal.prompt(f"Machine [1-{len(peers)}]: ")
            index = int(choice) - 1
            if not 0 <= index < len(peers):
                raise ValueError(f"no machine numbered {choice}")
            kind = AddressKind(
                (await self._terminal.prompt("Address type (domain/full/ip) [domain]: ")).strip()
                or AddressKind.DOMAIN
            )
            default_address = peers[index].address(kind)

        address = (await self._terminal.prompt(_label("Address", default_address))).strip()
        port = (await self._terminal.prompt(_label("Port", str(self._default_port)))).strip()
        username = (await self._terminal.prompt(_label("Username", self._default_username))).strip()
        password = await self._terminal.prompt("Password: ", echo=False)
        return SessionTarget(
            address=address or default_address,
            port=int(port or self._default_port),
            username=username or self._default_username,
            password=password,
        )

    async def _host_confirm(self, host: str) -> None:
        self._writer.write_status(f"The authenticity of host '{host}' can't be established.")
        answer = await self._terminal.prompt("Trust this host and continue? [y/N]: ")
        self._finish(Dialog.HOST_CONFIRM)
        await self.actions.answer_host(answer.strip().lower() in ("y", "yes"))

    async def _error(self, error: SshError) -> None:
        self._writer.write_status(f"SSH error: {error}")
        answer = await self._terminal.prompt("Retry with different settings? [Y/n]: ")
        self._finish(Dialog.ERROR)
        await self.actions.dismiss_error(answer.strip().lower() not in ("n", "no"))

    # ------------------------------------------------------------------
    # Task plumbing
    # ------------------------------------------------------------------

    def _start(self, dialog: Dialog, body: Coroutine[object, object, None]) -> None:
        self.close(dialog)
        task = asyncio.create_task(body, name=f"tsterm-{dialog.value}")
        task.add_done_callback(functools.partial(self._done, dialog))
        self._tasks[dialog] = task

    def _done(self, dialog: Dialog, task: asyncio.Task[None]) -> None:
        if self._tasks.get(dialog) is task:
            del self._tasks[dialog]
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, EOFError):
            logger.info("Console input closed while the %s dialog was open", dialog.value)
        elif error is not None:
            logger.error("%s dialog failed: %s", dialog.value, error, exc_info=error)

    def _finish(self, dialog: Dialog) -> None:
        # A submitted dialog is closed before its action runs.
        if self._tasks.get(dialog) is asyncio.current_task():
            del self._tasks[dialog]

    def _set_title(self, title: str) -> None:
        self._terminal.write(f"\x1b]0;{title}\x07")


def _label(name: str, default: str) -> str:
    return f"{name} [{default}]: " if default else f"{name}: "
