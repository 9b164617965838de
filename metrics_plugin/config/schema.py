"""
Configuration schema: typed dataclasses built from a parsed document.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from ..const import (
    DEFAULT_HOST_ID_COMMAND,
    DEFAULT_LEAD_TIME,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_MQTT_PORT,
    DEFAULT_PRESENCE_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TOPIC_PREFIX,
)
from ..models.payload import DataSourceType, Interval, ProtocolVersion
from .parser import Block, ConfigDocument


E = TypeVar("E", bound=Enum)


def parse_enum(enum_cls: type[E], value: Any, directive: str) -> E:
    """
    Look up an enum member by value, case-insensitively.

    Raises:
        ValueError: If no member matches
    """
    text = str(value).lower()
    for member in enum_cls:
        if member.value == text:
            return member
    choices = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"Invalid value '{value}' for '{directive}' (expected one of: {choices})")


class CommandFormat(Enum):
    """How a command source's output lines become data sources."""
    KV = "kv"          # "<key> <number> ..." per line, one data source per line
    VALUE = "value"    # First number printed, one data source named after the block


@dataclass
class DaemonConfig:
    """MQTT connection to the monitoring daemon."""
    host: str = "localhost"
    port: int = DEFAULT_MQTT_PORT
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    topic_prefix: str = DEFAULT_TOPIC_PREFIX  # may contain {host_id}
    keepalive: int = DEFAULT_MQTT_KEEPALIVE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    presence_timeout: float = DEFAULT_PRESENCE_TIMEOUT

    @classmethod
    def from_block(cls, block: Block | None) -> "DaemonConfig":
        """Create DaemonConfig from a parsed 'daemon' block."""
        if block is None:
            return cls()

        return cls(
            host=str(block.get_value("host", "localhost")),
            port=int(block.get_value("port", DEFAULT_MQTT_PORT)),
            username=block.get_value("username"),
            password=block.get_value("password"),
            client_id=block.get_value("client_id"),
            topic_prefix=str(block.get_value("topic_prefix", DEFAULT_TOPIC_PREFIX)),
            keepalive=int(block.get_value("keepalive", DEFAULT_MQTT_KEEPALIVE)),
            request_timeout=float(block.get_value("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
            presence_timeout=float(block.get_value("presence_timeout", DEFAULT_PRESENCE_TIMEOUT)),
        )


@dataclass
class HostConfig:
    """Where the host identifier comes from."""
    command: str = DEFAULT_HOST_ID_COMMAND

    @classmethod
    def from_block(cls, block: Block | None) -> "HostConfig":
        """Create HostConfig from a parsed 'host' block."""
        if block is None:
            return cls()
        return cls(command=str(block.get_value("command", DEFAULT_HOST_ID_COMMAND)))


@dataclass
class SystemSourceConfig:
    """Built-in host statistics gathered with psutil."""
    cpu: bool = True
    cpu_per_core: bool = True
    memory: bool = True
    load: bool = True

    @classmethod
    def from_block(cls, block: Block) -> "SystemSourceConfig":
        """Create SystemSourceConfig from a parsed 'system' block."""
        return cls(
            cpu=bool(block.get_value("cpu", True)),
            cpu_per_core=bool(block.get_value("cpu_per_core", True)),
            memory=bool(block.get_value("memory", True)),
            load=bool(block.get_value("load", True)),
        )


@dataclass
class CommandSourceConfig:
    """Data sources read from an external command's output."""
    name: str
    command: str | None = None
    format: CommandFormat = CommandFormat.KV
    prefix: str = ""
    scale: float = 1.0
    type: DataSourceType = DataSourceType.GAUGE
    units: str = ""
    required: bool = False  # Treat empty output as a failure

    @classmethod
    def from_block(cls, block: Block) -> "CommandSourceConfig":
        """Create CommandSourceConfig from a parsed 'command' block."""
        return cls(
            name=block.name or "command",
            command=block.get_value("command"),
            format=parse_enum(CommandFormat, block.get_value("format", "kv"), "format"),
            prefix=str(block.get_value("prefix", "")),
            scale=float(block.get_value("scale", 1.0)),
            type=parse_enum(DataSourceType, block.get_value("type", "gauge"), "type"),
            units=str(block.get_value("units", "")),
            required=bool(block.get_value("required", False)),
        )


@dataclass
class PluginConfig:
    """The plugin this process runs."""
    name: str
    interval: Interval = Interval.FIVE_SECONDS
    protocol: ProtocolVersion = ProtocolVersion.V2
    lead_time: float = DEFAULT_LEAD_TIME
    retry_delay: float = DEFAULT_RETRY_DELAY
    system: SystemSourceConfig | None = None
    commands: list[CommandSourceConfig] = field(default_factory=list)

    @classmethod
    def from_block(cls, block: Block) -> "PluginConfig":
        """Create PluginConfig from a parsed 'plugin' block."""
        if not block.name:
            raise ValueError(f"Plugin block on line {block.line} needs a name")

        system_block = block.get_block("system")

        return cls(
            name=block.name,
            interval=parse_enum(Interval, block.get_value("interval", "five_seconds"), "interval"),
            protocol=parse_enum(ProtocolVersion, block.get_value("protocol", "v2"), "protocol"),
            lead_time=float(block.get_value("lead_time", DEFAULT_LEAD_TIME)),
            retry_delay=float(block.get_value("retry_delay", DEFAULT_RETRY_DELAY)),
            system=SystemSourceConfig.from_block(system_block) if system_block else None,
            commands=[CommandSourceConfig.from_block(b) for b in block.get_blocks("command")],
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "info"
    file: str | None = None
    file_level: str = "debug"
    file_max_size: int = 10  # MB
    file_keep: int = 5
    colors: bool = True
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    syslog: bool | None = None  # None: on when running as a daemon
    syslog_facility: str = "local0"

    @classmethod
    def from_block(cls, block: Block | None) -> "LoggingConfig":
        """Create LoggingConfig from a parsed 'logging' block."""
        if block is None:
            return cls()

        syslog = block.get_value("syslog")

        return cls(
            level=str(block.get_value("level", "info")),
            file=block.get_value("file"),
            file_level=str(block.get_value("file_level", "debug")),
            file_max_size=int(block.get_value("file_max_size", 10)),
            file_keep=int(block.get_value("file_keep", 5)),
            colors=bool(block.get_value("colors", True)),
            format=block.get_value("format", "%(asctime)s [%(levelname)s] %(name)s: %(message)s"),
            syslog=None if syslog is None else bool(syslog),
            syslog_facility=str(block.get_value("syslog_facility", "local0")),
        )


@dataclass
class Config:
    """Complete plugin configuration."""
    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    host: HostConfig = field(default_factory=HostConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    plugin: PluginConfig | None = None

    @classmethod
    def from_document(cls, doc: ConfigDocument) -> "Config":
        """Create Config from a parsed ConfigDocument."""
        plugins = doc.get_blocks("plugin")
        if len(plugins) > 1:
            raise ValueError(
                f"Only one plugin block is allowed per process, found {len(plugins)}"
            )

        return cls(
            daemon=DaemonConfig.from_block(doc.get_block("daemon")),
            host=HostConfig.from_block(doc.get_block("host")),
            logging=LoggingConfig.from_block(doc.get_block("logging")),
            plugin=PluginConfig.from_block(plugins[0]) if plugins else None,
        )
