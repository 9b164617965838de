"""
Versioned payload codecs.
"""

from ..models.payload import ProtocolVersion
from .base import HEADER, Codec
from .v1 import V1Codec
from .v2 import V2Codec


def choose_protocol(version: ProtocolVersion) -> Codec:
    """Return the codec for a protocol version."""
    if version == ProtocolVersion.V1:
        return V1Codec()
    if version == ProtocolVersion.V2:
        return V2Codec()
    raise ValueError(f"Unsupported protocol version: {version!r}")


__all__ = [
    "HEADER",
    "Codec",
    "V1Codec",
    "V2Codec",
    "choose_protocol",
]
