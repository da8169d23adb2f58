"""Wire protocol shared by the control and session channels.

Public API:
    MessageType -- Closed enumeration of envelope types
    Envelope -- One ``{type, data}`` frame
    encode / decode -- Wire text conversion
    MalformedEnvelope -- Raised for frames that do not decode
"""

from tsterm.protocol.codec import Envelope, MalformedEnvelope, MessageType, decode, encode

__all__ = ["Envelope", "MalformedEnvelope", "MessageType", "decode", "encode"]
