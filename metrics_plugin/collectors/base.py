"""
Base sampler interface.

A sampler contributes data sources to every payload. Errors are not
caught here: they propagate to the supervisor, which retries the whole
plugin after a delay.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..models.payload import DataSource


class Sampler(ABC):
    """Abstract base class for data source samplers."""

    # Source type for log messages (override in subclasses)
    SOURCE_TYPE: str = "unknown"

    def __init__(self, name: str):
        self.name = name
        self._initialized = False

    async def initialize(self) -> None:
        """
        Prepare the sampler.

        Called once before the first collection. Override to prime
        counters or probe the host.
        """
        self._initialized = True

    @property
    def initialized(self) -> bool:
        return self._initialized

    @abstractmethod
    async def collect(self) -> list[DataSource]:
        """
        Collect one reading of every data source.

        Returns:
            Data sources in a stable order
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


async def collect_all(samplers: Sequence[Sampler]) -> list[DataSource]:
    """Run samplers in order and concatenate their data sources."""
    datasources: list[DataSource] = []
    for sampler in samplers:
        if not sampler.initialized:
            await sampler.initialize()
        datasources.extend(await sampler.collect())
    return datasources
