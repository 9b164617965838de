"""
Version 1 protocol: checksummed JSON text.

Layout:
    DATASOURCES\n
    <body length, 8 hex digits>\n
    <md5 of body, 32 hex digits>\n
    <body: JSON object>
"""

import hashlib
import json

from ..errors import ProtocolError
from ..models.payload import Payload, ProtocolVersion
from .base import HEADER, Codec, datasource_from_metadata, datasource_metadata, dump_json


class V1Codec(Codec):
    """Human-readable codec, convenient for debugging plugins."""

    VERSION = ProtocolVersion.V1

    _PREFIX = HEADER + b"\n"

    def encode(self, payload: Payload) -> bytes:
        body = dump_json({
            "timestamp": payload.timestamp,
            "datasources": [
                {**datasource_metadata(ds), "value": ds.value}
                for ds in payload.datasources
            ],
        })

        checksum = hashlib.md5(body).hexdigest()
        return b"".join([
            self._PREFIX,
            f"{len(body):08x}\n".encode(),
            f"{checksum}\n".encode(),
            body,
        ])

    def decode(self, data: bytes) -> Payload:
        if not data.startswith(self._PREFIX):
            raise ProtocolError("Missing DATASOURCES header")

        rest = data[len(self._PREFIX):]
        try:
            length_line, checksum_line, body = rest.split(b"\n", 2)
            length = int(length_line, 16)
        except ValueError as e:
            raise ProtocolError(f"Malformed v1 preamble: {e}") from e

        if len(body) != length:
            raise ProtocolError(f"Expected {length} body bytes, got {len(body)}")
        if hashlib.md5(body).hexdigest().encode() != checksum_line:
            raise ProtocolError("Checksum mismatch")

        try:
            document = json.loads(body)
            return Payload(
                timestamp=int(document["timestamp"]),
                datasources=tuple(
                    datasource_from_metadata(entry, entry["value"])
                    for entry in document["datasources"]
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ProtocolError(f"Invalid v1 body: {e}") from e
