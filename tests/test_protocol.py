"""
Tests for the payload codecs.
"""

import json

import pytest

from metrics_plugin.errors import ProtocolError
from metrics_plugin.models.payload import DataSource, DataSourceType, Payload, ProtocolVersion
from metrics_plugin.protocol import HEADER, V1Codec, V2Codec, choose_protocol


PAYLOAD = Payload(
    timestamp=1_700_000_000,
    datasources=(
        DataSource("memory_total_kib", 16_384_000, units="KiB"),
        DataSource("cpu0", 0.25, min=0.0, max=1.0, description="CPU 0 usage"),
        DataSource("net_rx", 1234, type=DataSourceType.DERIVE, units="B/s"),
        DataSource("cpu1", 0.75, min=0.0, max=1.0),
    ),
)


@pytest.mark.parametrize("codec", [V1Codec(), V2Codec()], ids=repr)
def test_decode_preserves_payload(codec) -> None:
    data = codec.encode(PAYLOAD)

    assert data.startswith(HEADER)
    assert codec.decode(data) == PAYLOAD


def test_v2_keeps_integer_values() -> None:
    decoded = V2Codec().decode(V2Codec().encode(PAYLOAD))
    assert isinstance(decoded.datasources[0].value, int)
    assert isinstance(decoded.datasources[1].value, float)


def test_empty_payload() -> None:
    empty = Payload(timestamp=0)
    assert V2Codec().decode(V2Codec().encode(empty)) == empty


def test_v2_detects_corrupt_value() -> None:
    data = bytearray(V2Codec().encode(PAYLOAD))
    # First byte of the value block
    data[len(HEADER) + 20] ^= 0xFF

    with pytest.raises(ProtocolError, match="checksum"):
        V2Codec().decode(bytes(data))


def test_v2_detects_truncation() -> None:
    data = V2Codec().encode(PAYLOAD)
    with pytest.raises(ProtocolError):
        V2Codec().decode(data[:-5])


def test_v1_rejects_bad_header() -> None:
    data = V1Codec().encode(PAYLOAD)
    with pytest.raises(ProtocolError, match="header"):
        V1Codec().decode(b"SOURCES" + data[len(HEADER):])


def test_v1_detects_corrupt_body() -> None:
    data = V1Codec().encode(PAYLOAD).replace(b"cpu0", b"cpu9")
    with pytest.raises(ProtocolError, match="Checksum"):
        V1Codec().decode(data)


def test_choose_protocol() -> None:
    assert isinstance(choose_protocol(ProtocolVersion.V1), V1Codec)
    assert isinstance(choose_protocol(ProtocolVersion.V2), V2Codec)

    with pytest.raises(ValueError):
        choose_protocol("v3")


@pytest.mark.parametrize("value", [2**63, 2**64 + 5, -(2**63) - 1])
def test_v2_sends_out_of_range_integers_as_floats(value: int) -> None:
    """Counters beyond int64 still encode instead of failing every cycle."""
    payload = Payload(timestamp=1, datasources=(DataSource("rx_bytes", value), DataSource("cpu0", 3)))

    decoded = V2Codec().decode(V2Codec().encode(payload))

    assert decoded.datasources[0].value == float(value)
    assert isinstance(decoded.datasources[0].value, float)
    assert decoded.datasources[1].value == 3
    assert isinstance(decoded.datasources[1].value, int)


def test_v1_body_is_standard_json() -> None:
    """Open bounds are written as null, never as Infinity."""
    data = V1Codec().encode(PAYLOAD)
    body = data.split(b"\n", 3)[3]

    def reject(constant: str):
        raise ValueError(f"non-standard JSON constant {constant}")

    document = json.loads(body, parse_constant=reject)

    assert document["datasources"][0]["min"] is None
    assert document["datasources"][0]["max"] is None
    assert document["datasources"][1]["max"] == 1.0
    assert V1Codec().decode(data).datasources[0].max == float("inf")


def test_non_finite_value_is_a_protocol_error() -> None:
    payload = Payload(timestamp=1, datasources=(DataSource("temp", float("nan")),))

    with pytest.raises(ProtocolError, match="Cannot encode"):
        V1Codec().encode(payload)
