"""Frame codec for the control and session channels.

Every WebSocket frame on either channel is one JSON envelope of the form
``{"type": ..., "data": ...}``. ``data`` is always a string; structured
payloads (the peer list, terminal size) are JSON encoded into it rather
than spliced into the envelope, so arbitrary text round-trips.
"""

from __future__ import annotations

import enum
import json
import logging

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from tsterm.domain.models import Geometry, PeerInfo, SessionTarget

logger = logging.getLogger(__name__)


class MessageType(str, enum.Enum):
    """Closed set of envelope types understood on both channels."""

    INFO = "info"
    PEERS = "peers"
    INPUT = "input"
    SIZE = "size"
    SSH_CONFIG = "ssh-config"
    SSH_ERROR = "ssh-error"
    SSH_HOST = "ssh-host"
    SSH_HOST_ACTION = "ssh-host-action"
    SSH_SUCCESS = "ssh-success"
    OUTPUT = "output"
    WS_OPENED = "ts-websocket-opened"
    WS_ERROR = "ts-websocket-error"


class MalformedEnvelope(ValueError):
    """Raised when a frame is not a valid envelope."""


_PEERS = TypeAdapter(list[PeerInfo])


class Envelope(BaseModel):
    """A single message exchanged on a channel."""

    model_config = ConfigDict(frozen=True)

    type: MessageType
    data: str = Field(default="")

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value: object) -> object:
        # Lifecycle notices are sent without a payload
        return "" if value is None else value

    def payload(self) -> str | tuple[PeerInfo, ...] | Geometry | SessionTarget:
        """Return ``data`` interpreted according to ``type``.

        Raises:
            MalformedEnvelope: If a structured payload does not validate.
        """
        try:
            if self.type is MessageType.PEERS:
                return tuple(_PEERS.validate_json(self.data))
            if self.type is MessageType.SIZE:
                return Geometry.model_validate_json(self.data)
            if self.type is MessageType.SSH_CONFIG:
                return SessionTarget.from_wire(self.data)
        except ValueError as e:
            raise MalformedEnvelope(f"Invalid {self.type.value} payload: {e}") from e
        return self.data


def encode(type: MessageType | str, data: str = "") -> str:
    """Encode one envelope to wire text."""
    return Envelope(type=MessageType(type), data=data).model_dump_json()


def decode(text: str | bytes) -> Envelope:
    """Decode wire text into an envelope.

    Structured payloads are validated here so that a bad peer list or
    size object is rejected with the frame rather than deep in a handler.

    Raises:
        MalformedEnvelope: If the frame is not a JSON object with a known
            ``type`` and a string ``data``.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedEnvelope(f"Frame is not JSON: {e}") from e
    if not isinstance(raw, dict):
        raise MalformedEnvelope(f"Frame is not an object: {type(raw).__name__}")
    try:
        envelope = Envelope.model_validate(raw)
    except ValidationError as e:
        raise MalformedEnvelope(f"Invalid envelope: {e.errors()[0]['msg']}") from e
    if envelope.type in (MessageType.PEERS, MessageType.SIZE):
        envelope.payload()
    return envelope
