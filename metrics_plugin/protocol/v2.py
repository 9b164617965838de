"""
Version 2 protocol: fixed binary values followed by JSON metadata.

Layout (big-endian):
    header          11 bytes  "DATASOURCES"
    value crc32      4 bytes  over the value block
    metadata crc32   4 bytes  over the metadata block
    count            4 bytes  number of data sources
    timestamp        8 bytes  seconds since epoch
    values       8 * count    int64 or float64 each
    metadata length  4 bytes
    metadata         JSON     {"datasources": [...]}

Values live in a fixed-size block so a reader can re-read them cheaply
while metadata stays unchanged between cycles.
"""

import json
import struct
import zlib

from ..errors import ProtocolError
from ..models.payload import Payload, ProtocolVersion
from .base import HEADER, Codec, datasource_from_metadata, datasource_metadata, dump_json


_PREAMBLE = struct.Struct(">IIIQ")
_META_LENGTH = struct.Struct(">I")
_INT = struct.Struct(">q")
_FLOAT = struct.Struct(">d")

# Integers outside this range (u64 counters) are sent as floats
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class V2Codec(Codec):
    """Compact binary codec."""

    VERSION = ProtocolVersion.V2

    def encode(self, payload: Payload) -> bytes:
        values = []
        metadata = []
        for ds in payload.datasources:
            meta = datasource_metadata(ds)
            if isinstance(ds.value, int) and _INT64_MIN <= ds.value <= _INT64_MAX:
                values.append(_INT.pack(ds.value))
                meta["value_type"] = "int64"
            else:
                values.append(_FLOAT.pack(ds.value))
                meta["value_type"] = "float"
            metadata.append(meta)

        value_block = b"".join(values)
        meta_block = dump_json({"datasources": metadata})

        return b"".join([
            HEADER,
            _PREAMBLE.pack(
                zlib.crc32(value_block),
                zlib.crc32(meta_block),
                len(payload.datasources),
                payload.timestamp,
            ),
            value_block,
            _META_LENGTH.pack(len(meta_block)),
            meta_block,
        ])

    def decode(self, data: bytes) -> Payload:
        if not data.startswith(HEADER):
            raise ProtocolError("Missing DATASOURCES header")

        offset = len(HEADER)
        try:
            value_crc, meta_crc, count, timestamp = _PREAMBLE.unpack_from(data, offset)
            offset += _PREAMBLE.size

            value_block = data[offset:offset + 8 * count]
            offset += 8 * count

            (meta_length,) = _META_LENGTH.unpack_from(data, offset)
            offset += _META_LENGTH.size
        except struct.error as e:
            raise ProtocolError(f"Truncated v2 payload: {e}") from e

        meta_block = data[offset:offset + meta_length]
        if len(value_block) != 8 * count or len(meta_block) != meta_length:
            raise ProtocolError("Truncated v2 payload")
        if zlib.crc32(value_block) != value_crc:
            raise ProtocolError("Value checksum mismatch")
        if zlib.crc32(meta_block) != meta_crc:
            raise ProtocolError("Metadata checksum mismatch")

        try:
            metadata = json.loads(meta_block)["datasources"]
        except (KeyError, ValueError) as e:
            raise ProtocolError(f"Invalid v2 metadata: {e}") from e

        if len(metadata) != count:
            raise ProtocolError(f"Metadata describes {len(metadata)} sources, header says {count}")

        datasources = []
        for index, meta in enumerate(metadata):
            raw = value_block[index * 8:(index + 1) * 8]
            if meta.get("value_type") == "int64":
                (value,) = _INT.unpack(raw)
            else:
                (value,) = _FLOAT.unpack(raw)
            datasources.append(datasource_from_metadata(meta, value))

        return Payload(timestamp=timestamp, datasources=tuple(datasources))
