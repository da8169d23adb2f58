"""Exceptions raised by the channel managers."""

from __future__ import annotations


class ChannelError(Exception):
    """Raised when a channel cannot connect, send, or change state."""

    def __init__(self, message: str, channel: str = "") -> None:
        super().__init__(message)
        self.channel = channel


class SshError(ChannelError):
    """The backend reported that the SSH connection or login failed.

    The session channel stays open; the user may resubmit credentials.
    """

    def __init__(self, detail: str = "", channel: str = "session") -> None:
        super().__init__(detail or "SSH connection failed", channel=channel)
        self.detail = detail


class HostTrustPending(ChannelError):
    """Input was refused because the backend awaits a host-trust decision."""

    def __init__(self, host: str, channel: str = "session") -> None:
        super().__init__(f"Awaiting host confirmation for {host}", channel=channel)
        self.host = host
