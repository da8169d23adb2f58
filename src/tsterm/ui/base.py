"""Abstract interfaces for the dialogs around the terminal.

The session needs four modal surfaces: the connection setup form, an
in-progress indicator, the host-trust confirmation and the SSH error
prompt. A ``DialogHost`` presents them; whatever the user decides is
reported back through the ``DialogActions`` it is bound to.
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from tsterm.channel.errors import SshError
from tsterm.domain.models import PeerInfo, SessionTarget

logger = logging.getLogger(__name__)


class Dialog(str, enum.Enum):
    """The named modal surfaces."""

    CONNECTION = "connection"
    PROGRESS = "progress"
    HOST_CONFIRM = "host-confirm"
    ERROR = "error"


class DialogActions(ABC):
    """Receiver for the decisions made in the dialogs."""

    @abstractmethod
    async def submit_config(self, target: SessionTarget) -> None:
        """The user submitted the connection form."""
        ...

    @abstractmethod
    async def answer_host(self, accept: bool) -> None:
        """The user accepted or rejected the remote host identity."""
        ...

    @abstractmethod
    async def dismiss_error(self, retry: bool) -> None:
        """The user closed the SSH error prompt, optionally to retry."""
        ...


class DialogHost(ABC):
    """Abstract interface for presenting and dismissing the dialogs.

    ``show_*`` calls return immediately; the user's answer arrives later
    through the bound actions. ``close`` on a dialog that is not showing
    is a no-op.
    """

    def __init__(self) -> None:
        self._actions: DialogActions | None = None

    @property
    def actions(self) -> DialogActions:
        if self._actions is None:
            raise RuntimeError("Dialog host is not bound to any actions. Call bind() first.")
        return self._actions

    def bind(self, actions: DialogActions) -> None:
        self._actions = actions

    @abstractmethod
    def show_connection(self, peers: Sequence[PeerInfo]) -> None:
        """Present the connection form with the given machines."""
        ...

    @abstractmethod
    def show_progress(self) -> None:
        """Present the in-progress indicator."""
        ...

    @abstractmethod
    def show_host_confirm(self, host: str) -> None:
        """Ask whether to trust the identity of ``host``."""
        ...

    @abstractmethod
    def show_error(self, error: SshError) -> None:
        """Report an SSH failure and offer a retry."""
        ...

    @abstractmethod
    def close(self, dialog: Dialog) -> None:
        """Dismiss one dialog if it is showing."""
        ...

    def close_all(self) -> None:
        for dialog in Dialog:
            self.close(dialog)
