"""
Data sources parsed from an external command's output.

Two output formats are understood:

- ``kv``: every line of the form ``<key> <number> [...]`` becomes a data
  source named ``<prefix><key>`` (a trailing ``:`` on the key is dropped)
- ``value``: the first number found in the output becomes a single data
  source named after the source block

Lines that do not match are ignored.
"""

import re

from ..config.schema import CommandFormat, CommandSourceConfig
from ..errors import PluginError
from ..logging import get_logger
from ..models.payload import DataSource
from ..utils.command import cut, run_command
from .base import Sampler


logger = get_logger("collectors.command")

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def parse_number(text: str) -> int | float | None:
    """Parse an int or float, returning None if the text is not a number."""
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return None


class CommandSampler(Sampler):
    """Runs a command every cycle and converts its output."""

    SOURCE_TYPE = "command"

    def __init__(self, config: CommandSourceConfig):
        super().__init__(config.name)
        self.config = config

    def _make(self, name: str, value: int | float) -> DataSource:
        if self.config.scale != 1.0:
            value = value * self.config.scale
        return DataSource(
            name=name,
            value=value,
            type=self.config.type,
            units=self.config.units,
        )

    def parse_kv(self, line: str) -> DataSource | None:
        fields = cut(line)
        if len(fields) < 2:
            return None
        key = fields[0].rstrip(":")
        value = parse_number(fields[1])
        if not key or value is None:
            return None
        return self._make(f"{self.config.prefix}{key}", value)

    def parse_value(self, line: str) -> DataSource | None:
        match = _NUMBER_RE.search(line)
        if match is None:
            return None
        value = parse_number(match.group())
        if value is None:
            return None
        return self._make(f"{self.config.prefix}{self.name}", value)

    async def collect(self) -> list[DataSource]:
        if not self.config.command:
            raise PluginError(f"Command source '{self.name}' has no command")

        if self.config.format == CommandFormat.KV:
            datasources = await run_command(self.config.command, self.parse_kv)
        else:
            datasources = (await run_command(self.config.command, self.parse_value))[:1]

        if not datasources:
            if self.config.required:
                raise PluginError(f"Command source '{self.name}' produced no data")
            logger.debug(f"Command source '{self.name}' produced no data")

        return datasources
