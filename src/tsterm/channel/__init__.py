"""Channel managers for tsterm.

Two managers each own one WebSocket: the control channel (peer
discovery, configuration relay) and the session channel (the live
terminal). Both share the socket lifecycle in ``ChannelManager``.

Public API:
    ChannelError, SshError, HostTrustPending -- Exceptions
    ControlChannel -- Control channel manager
    SessionChannel -- Session channel manager
"""

from tsterm.channel.errors import ChannelError, HostTrustPending, SshError

__all__ = ["ChannelError", "HostTrustPending", "SshError", "ControlChannel", "SessionChannel"]


def __getattr__(name: str) -> type:
    """Lazy import for the managers, which pull in the websockets client."""
    if name == "ControlChannel":
        from tsterm.channel.control import ControlChannel
        return ControlChannel
    if name == "SessionChannel":
        from tsterm.channel.session import SessionChannel
        return SessionChannel
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
