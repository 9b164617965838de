"""
Host statistics collected with psutil.

Data sources:
- cpu_avg: overall CPU utilisation (0..1)
- cpu<N>: per-core utilisation (0..1)
- memory_total_kib, memory_free_kib
- loadavg: one-minute load average
"""

import psutil

from ..config.schema import SystemSourceConfig
from ..models.payload import DataSource
from .base import Sampler


class SystemSampler(Sampler):
    """Samples CPU, memory and load of the local host."""

    SOURCE_TYPE = "system"

    def __init__(self, config: SystemSourceConfig | None = None):
        super().__init__("system")
        self.config = config or SystemSourceConfig()

    async def initialize(self) -> None:
        # First cpu_percent(interval=None) call only sets the baseline
        if self.config.cpu or self.config.cpu_per_core:
            psutil.cpu_percent(interval=None, percpu=True)
        await super().initialize()

    async def collect(self) -> list[DataSource]:
        datasources: list[DataSource] = []

        if self.config.cpu or self.config.cpu_per_core:
            per_cpu = psutil.cpu_percent(interval=None, percpu=True)

            if self.config.cpu:
                average = sum(per_cpu) / len(per_cpu) if per_cpu else 0.0
                datasources.append(DataSource(
                    "cpu_avg",
                    average / 100.0,
                    units="(fraction)",
                    description="Average physical CPU utilisation",
                    min=0.0,
                    max=1.0,
                ))

            if self.config.cpu_per_core:
                for index, percent in enumerate(per_cpu):
                    datasources.append(DataSource(
                        f"cpu{index}",
                        percent / 100.0,
                        units="(fraction)",
                        description=f"Physical CPU {index} utilisation",
                        min=0.0,
                        max=1.0,
                    ))

        if self.config.memory:
            mem = psutil.virtual_memory()
            datasources.append(DataSource(
                "memory_total_kib",
                mem.total // 1024,
                units="KiB",
                description="Total amount of memory",
                min=0.0,
            ))
            datasources.append(DataSource(
                "memory_free_kib",
                mem.available // 1024,
                units="KiB",
                description="Memory available without swapping",
                min=0.0,
            ))

        if self.config.load:
            load1, _load5, _load15 = psutil.getloadavg()
            datasources.append(DataSource(
                "loadavg",
                float(load1),
                description="One-minute load average",
                min=0.0,
            ))

        return datasources
