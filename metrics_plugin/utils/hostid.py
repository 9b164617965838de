"""
Host identity lookup.

Plugins running inside a guest report under a host-qualified namespace.
The numeric identifier comes from an external identity store, queried by
running a command (``xenstore-read domid`` on Xen guests). The answer is
cached for the lifetime of the process.
"""

from ..const import DEFAULT_HOST_ID_COMMAND
from ..errors import PluginError
from ..logging import get_logger
from .command import run_command


logger = get_logger("hostid")


class HostIdentity:
    """Lazily resolved, cached host identifier."""

    def __init__(self, command: str = DEFAULT_HOST_ID_COMMAND):
        self.command = command
        self._host_id: int | None = None

    @staticmethod
    def _parse(line: str) -> int | None:
        line = line.strip()
        if not line:
            return None
        try:
            return int(line)
        except ValueError:
            return None

    async def get_host_id(self) -> int:
        """
        Return the host identifier, querying the store on first use.

        Raises:
            PluginError: If the command printed no integer
        """
        if self._host_id is None:
            values = await run_command(self.command, self._parse)
            if not values:
                raise PluginError(f"Could not read host id from '{self.command}'")
            self._host_id = values[0]
            logger.debug(f"Resolved host id {self._host_id}")
        return self._host_id

    async def root_path(self) -> str:
        """Store path under which this host publishes metrics."""
        return f"/local/domain/{await self.get_host_id()}/rrd"

    async def expand(self, template: str) -> str:
        """Substitute ``{host_id}`` in a template, querying only when needed."""
        if "{host_id}" not in template:
            return template
        return template.replace("{host_id}", str(await self.get_host_id()))
