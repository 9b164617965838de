"""
Plugin application: wires configuration, samplers, daemon client and
supervisor together.
"""

from .collectors.base import Sampler, collect_all
from .collectors.command import CommandSampler
from .collectors.system import SystemSampler
from .config.loader import ConfigError
from .config.schema import Config, LoggingConfig, PluginConfig
from .daemon.client import MQTTDaemonClient
from .logging import LogConfig, get_logger
from .models.payload import DataSource
from .plugin.supervisor import Supervisor
from .utils.hostid import HostIdentity


logger = get_logger("app")


def create_samplers(plugin: PluginConfig) -> list[Sampler]:
    """Create the samplers configured for a plugin, system first."""
    samplers: list[Sampler] = []

    if plugin.system is not None:
        samplers.append(SystemSampler(plugin.system))

    for source in plugin.commands:
        samplers.append(CommandSampler(source))

    return samplers


def build_log_config(
    config: LoggingConfig,
    daemonized: bool,
    cli_config: LogConfig | None = None,
) -> LogConfig:
    """
    Merge file logging settings with command-line overrides.

    Running in the background disables the console and, unless the
    file says otherwise, enables syslog.
    """
    log_config = cli_config or LogConfig(
        console_level=config.level,
        console_colors=config.colors,
    )

    if not log_config.file_enabled and config.file:
        log_config.file_enabled = True
        log_config.file_path = config.file
        log_config.file_level = config.file_level
        log_config.file_max_bytes = config.file_max_size * 1024 * 1024
        log_config.file_backup_count = config.file_keep

    log_config.format = config.format
    log_config.syslog_facility = config.syslog_facility
    if not log_config.syslog_enabled:
        log_config.syslog_enabled = daemonized if config.syslog is None else config.syslog

    if daemonized:
        log_config.console_enabled = False

    return log_config


class PluginApplication:
    """
    Runs the configured plugin under a supervisor.

    Construct it only after the process has been daemonized: the daemon
    client starts a background task once connected.
    """

    def __init__(self, config: Config):
        if config.plugin is None:
            raise ConfigError("No plugin block configured")

        self.config = config
        self.plugin = config.plugin
        self.samplers = create_samplers(self.plugin)

        self.daemon = MQTTDaemonClient(
            config.daemon,
            host_identity=HostIdentity(config.host.command),
        )

        self.supervisor = Supervisor(
            name=self.plugin.name,
            daemon=self.daemon,
            sample=self.sample,
            interval=self.plugin.interval,
            protocol=self.plugin.protocol,
            lead_time=self.plugin.lead_time,
            retry_delay=self.plugin.retry_delay,
        )

    async def sample(self) -> list[DataSource]:
        """Collect one reading from every sampler, in configuration order."""
        return await collect_all(self.samplers)

    async def run(self) -> int:
        """Run until interrupted. Returns the process exit status."""
        logger.info(
            f"Starting plugin {self.plugin.name} "
            f"({self.plugin.interval.value}, protocol {self.plugin.protocol.value}, "
            f"{len(self.samplers)} samplers)"
        )
        return await self.supervisor.run()


async def run_app(config: Config) -> int:
    """Create and run the plugin application."""
    app = PluginApplication(config)
    return await app.run()
