"""Domain models for tsterm.

This package contains the core data structures and enumerations shared
by the codec, the channel managers and the user-facing adapters. All
models use Pydantic v2 for validation and serialization.
"""

from tsterm.domain.models import (
    AddressKind,
    ChannelState,
    Geometry,
    LifecycleEvent,
    PeerInfo,
    SessionPhase,
    SessionTarget,
    sort_peers,
)

__all__ = [
    "AddressKind",
    "ChannelState",
    "Geometry",
    "LifecycleEvent",
    "PeerInfo",
    "SessionPhase",
    "SessionTarget",
    "sort_peers",
]
