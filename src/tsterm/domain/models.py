"""Core domain models for the tsterm client.

These models represent the data flowing between the two channels and
the user: the peer directory published by the control channel, the
session target the user submits, terminal geometry, and the states the
channel managers move through.
"""

from __future__ import annotations

import enum
import json

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ChannelState(str, enum.Enum):
    """Lifecycle of a single WebSocket channel."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    ERRORED = "errored"
    CLOSED = "closed"


class SessionPhase(str, enum.Enum):
    """Progress of the SSH session carried by the session channel."""

    HANDSHAKE = "handshake"  # Waiting for the backend to finish SSH setup
    HOST_PENDING = "host-pending"  # Backend awaits a host-trust decision
    ESTABLISHED = "established"  # Shell is live, keystrokes are relayed


class AddressKind(str, enum.Enum):
    """Which of a peer's addresses to dial."""

    DOMAIN = "domain"  # Short machine name
    FULL = "full"  # Fully qualified tailnet domain
    IP = "ip"  # First tailnet IP


class LifecycleEvent(str, enum.Enum):
    """Session channel lifecycle notices echoed to the control channel."""

    OPENED = "opened"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Peer directory
# ---------------------------------------------------------------------------


class PeerInfo(BaseModel):
    """One reachable machine on the tailnet and its addressing options."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    short_domain: str = Field(alias="shortDomain", description="Machine name, e.g. 'laptop'")
    domain: str = Field(description="Fully qualified domain, e.g. 'laptop.tail1234.ts.net.'")
    ips: tuple[str, ...] = Field(default=(), description="Tailnet IPs, IPv4 first")

    @field_validator("ips", mode="before")
    @classmethod
    def _null_ips(cls, value: object) -> object:
        return () if value is None else value

    @property
    def label(self) -> str:
        """Display label: short name and first IP."""
        if self.ips:
            return f"{self.short_domain} [{self.ips[0]}]"
        return self.short_domain

    def address(self, kind: AddressKind | str = AddressKind.DOMAIN) -> str:
        """Return the address of the requested kind.

        An IP request for a peer without IPs falls back to the full domain.
        """
        kind = AddressKind(kind)
        if kind is AddressKind.FULL:
            return self.domain
        if kind is AddressKind.IP:
            return self.ips[0] if self.ips else self.domain
        return self.short_domain


def sort_peers(peers: list[PeerInfo] | tuple[PeerInfo, ...]) -> tuple[PeerInfo, ...]:
    """Order peers by short name, case-insensitively and stably."""
    return tuple(sorted(peers, key=lambda peer: peer.short_domain.casefold()))


# ---------------------------------------------------------------------------
# Session models
# ---------------------------------------------------------------------------


class SessionTarget(BaseModel):
    """Machine and credentials the user submits from the connection dialog.

    Serialized positionally as ``username:password:address:port``, so no
    field may contain a colon.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(min_length=1)
    port: int = Field(default=22, ge=1, le=65535)
    username: str = Field(min_length=1)
    password: SecretStr = Field(default=SecretStr(""))

    @field_validator("address", "username")
    @classmethod
    def _no_colon(cls, value: str) -> str:
        if ":" in value:
            raise ValueError("must not contain ':'")
        return value

    @field_validator("password")
    @classmethod
    def _no_colon_secret(cls, value: SecretStr) -> SecretStr:
        if ":" in value.get_secret_value():
            raise ValueError("must not contain ':'")
        return value

    def to_wire(self) -> str:
        return f"{self.username}:{self.password.get_secret_value()}:{self.address}:{self.port}"

    @classmethod
    def from_wire(cls, data: str) -> SessionTarget:
        username, password, address, port = data.split(":")
        return cls(address=address, port=int(port), username=username, password=password)


class Geometry(BaseModel):
    """Terminal size in character cells and in pixels."""

    model_config = ConfigDict(frozen=True)

    rows: int = Field(ge=0)
    cols: int = Field(ge=0)
    x: int = Field(default=0, ge=0, description="Pixel width of the rendering surface")
    y: int = Field(default=0, ge=0, description="Pixel height of the rendering surface")

    def to_wire(self) -> str:
        return json.dumps({"rows": self.rows, "cols": self.cols, "x": self.x, "y": self.y})
