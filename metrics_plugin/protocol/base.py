"""
Codec interface and helpers shared by the protocol versions.
"""

import json
import math
from abc import ABC, abstractmethod
from typing import Any

from ..errors import ProtocolError
from ..models.payload import DataSource, DataSourceType, Payload, ProtocolVersion


# Every protocol file starts with this marker
HEADER = b"DATASOURCES"


class Codec(ABC):
    """
    Serializes payloads into the bytes a daemon reads from a plugin file.

    Implementations must keep the order of data sources.
    """

    VERSION: ProtocolVersion

    @abstractmethod
    def encode(self, payload: Payload) -> bytes:
        """Encode a payload into its on-disk representation."""
        pass

    @abstractmethod
    def decode(self, data: bytes) -> Payload:
        """
        Decode bytes produced by encode().

        Raises:
            ProtocolError: If the data is truncated or corrupt
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.VERSION.value})"


def _bound(value: float) -> float | None:
    # JSON has no infinity; an open bound is written as null
    return None if math.isinf(value) else value


def datasource_metadata(ds: DataSource) -> dict[str, Any]:
    """Describe a data source without its value."""
    return {
        "name": ds.name,
        "type": ds.type.value,
        "units": ds.units,
        "description": ds.description,
        "min": _bound(ds.min),
        "max": _bound(ds.max),
    }


def datasource_from_metadata(meta: dict[str, Any], value: int | float) -> DataSource:
    """Rebuild a data source from its metadata and value."""
    low = meta.get("min")
    high = meta.get("max")
    try:
        return DataSource(
            name=meta["name"],
            value=value,
            type=DataSourceType(meta.get("type", "gauge")),
            units=meta.get("units", ""),
            description=meta.get("description", ""),
            min=float("-inf") if low is None else float(low),
            max=float("inf") if high is None else float(high),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise ProtocolError(f"Invalid data source metadata: {e}") from e


def dump_json(document: Any) -> bytes:
    """
    Serialize to compact, standard JSON.

    Raises:
        ProtocolError: If the document holds NaN or an infinite number
    """
    try:
        return json.dumps(document, separators=(",", ":"), allow_nan=False).encode()
    except ValueError as e:
        raise ProtocolError(f"Cannot encode payload: {e}") from e
