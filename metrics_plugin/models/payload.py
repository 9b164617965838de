"""
Sample payload model shared by samplers, codecs and the writer.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class Interval(Enum):
    """Sampling frequency a plugin declares when registering."""
    FIVE_SECONDS = "five_seconds"
    ONE_MINUTE = "one_minute"
    ONE_HOUR = "one_hour"
    ONE_DAY = "one_day"

    @property
    def seconds(self) -> float:
        """Nominal cycle length in seconds."""
        return _INTERVAL_SECONDS[self]


_INTERVAL_SECONDS = {
    Interval.FIVE_SECONDS: 5.0,
    Interval.ONE_MINUTE: 60.0,
    Interval.ONE_HOUR: 3600.0,
    Interval.ONE_DAY: 86400.0,
}


class ProtocolVersion(Enum):
    """Wire protocol version negotiated with the daemon."""
    V1 = "v1"
    V2 = "v2"


class DataSourceType(Enum):
    """How the daemon should interpret consecutive values."""
    GAUGE = "gauge"          # Absolute reading
    ABSOLUTE = "absolute"    # Value since last reading, rate per second
    DERIVE = "derive"        # Monotonic counter


@dataclass(frozen=True)
class DataSource:
    """
    A single named value in a payload.

    Examples:
        DataSource("cpu0", 0.42)
        DataSource("memory_free_kib", 1048576, units="KiB")
    """
    name: str
    value: int | float
    type: DataSourceType = DataSourceType.GAUGE
    units: str = ""
    description: str = ""
    min: float = float("-inf")
    max: float = float("inf")

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Data source name must not be empty")
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"Data source {self.name!r} has non-numeric value {self.value!r}")


@dataclass(frozen=True)
class Payload:
    """One timestamped batch of data sources, in sampling order."""
    timestamp: int
    datasources: tuple[DataSource, ...] = field(default_factory=tuple)

    @classmethod
    def create(cls, datasources: Iterable[DataSource], timestamp: int | None = None) -> "Payload":
        """Build a payload, stamping it with the current time by default."""
        return cls(
            timestamp=now() if timestamp is None else timestamp,
            datasources=tuple(datasources),
        )

    def __len__(self) -> int:
        return len(self.datasources)


def now() -> int:
    """Current time as integer seconds since the epoch."""
    return int(time.time())
