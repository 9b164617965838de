"""
Configuration loader with file reading and validation.
"""

from pathlib import Path

from .lexer import LexerError
from .parser import Block, ConfigDocument, ParseError, parse_config, parse_config_file
from .schema import CommandFormat, Config


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


class ConfigLoader:
    """
    Loads and validates configuration from files or strings.

    Usage:
        loader = ConfigLoader()
        config = loader.load_file("/etc/metrics-plugin/cpu.conf")
        warnings = loader.validate(config)
    """

    # Known directives for each block type
    KNOWN_DIRECTIVES = {
        "daemon": {
            "host",
            "port",
            "username",
            "password",
            "client_id",
            "topic_prefix",
            "keepalive",
            "request_timeout",
            "presence_timeout",
        },
        "host": {"command"},
        "plugin": {"interval", "protocol", "lead_time", "retry_delay"},
        "system": {"cpu", "cpu_per_core", "memory", "load"},
        "command": {"command", "format", "prefix", "scale", "type", "units", "required"},
        "logging": {
            "level",
            "file",
            "file_level",
            "file_max_size",
            "file_keep",
            "colors",
            "format",
            "syslog",
            "syslog_facility",
        },
    }

    # Blocks allowed inside another block
    KNOWN_NESTING = {
        "<root>": {"daemon", "host", "plugin", "logging"},
        "plugin": {"system", "command"},
    }

    def __init__(self):
        self.last_document: ConfigDocument | None = None

    def _build(self, load) -> Config:
        try:
            document = load()
            self.last_document = document
            return Config.from_document(document)
        except (LexerError, ParseError) as e:
            raise ConfigError(f"Failed to parse configuration: {e}") from e
        except (OSError, ValueError, TypeError) as e:
            raise ConfigError(f"Failed to load configuration: {e}") from e

    def load_file(self, path: str | Path) -> Config:
        """
        Load configuration from a file.

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        path = Path(path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        if not path.is_file():
            raise ConfigError(f"Not a file: {path}")

        return self._build(lambda: parse_config_file(path))

    def load_string(
        self,
        source: str,
        filename: str = "<string>",
        base_path: str | Path | None = None,
    ) -> Config:
        """
        Load configuration from a string.

        Raises:
            ConfigError: If configuration cannot be parsed
        """
        if base_path is not None:
            base_path = Path(base_path)
        return self._build(lambda: parse_config(source, filename, base_path))

    def validate(self, config: Config) -> list[str]:
        """
        Validate configuration and return list of warnings.

        Args:
            config: Configuration to validate

        Returns:
            List of warning messages (empty if no issues)
        """
        warnings = []

        if self.last_document:
            warnings.extend(self._check_unknown(self.last_document))

        if not config.daemon.host:
            warnings.append("Daemon MQTT host is not configured")

        plugin = config.plugin
        if plugin is None:
            warnings.append("No plugin block configured")
            return warnings

        if plugin.system is None and not plugin.commands:
            warnings.append(f"Plugin '{plugin.name}' has no data sources")

        if plugin.lead_time >= plugin.interval.seconds:
            warnings.append(
                f"Plugin '{plugin.name}' lead_time {plugin.lead_time:g}s is not shorter "
                f"than its interval ({plugin.interval.seconds:g}s)"
            )

        if plugin.retry_delay <= 0:
            warnings.append(f"Plugin '{plugin.name}' retry_delay must be positive")

        seen: set[str] = set()
        for source in plugin.commands:
            if not source.command:
                warnings.append(f"Command source '{source.name}' has no command")
            if source.name in seen:
                warnings.append(f"Duplicate command source '{source.name}'")
            seen.add(source.name)
            if source.format == CommandFormat.KV and not source.prefix and len(plugin.commands) > 1:
                warnings.append(
                    f"Command source '{source.name}' has no prefix; keys may collide with other sources"
                )

        return warnings

    def _check_unknown(self, document: ConfigDocument) -> list[str]:
        """Check for unknown blocks and directives in a parsed document."""
        warnings = []

        def check_block(block: Block, path: str) -> None:
            known = self.KNOWN_DIRECTIVES.get(block.type, set())
            for directive in block.directives:
                if directive.name not in known:
                    warnings.append(
                        f"Unknown directive '{directive.name}' in {path} block (line {directive.line})"
                    )

            allowed = self.KNOWN_NESTING.get(block.type, set())
            for nested in block.blocks:
                if nested.type not in allowed:
                    warnings.append(
                        f"Unexpected block '{nested.type}' in {path} (line {nested.line})"
                    )
                    continue
                check_block(nested, f"{path}.{nested.type}" if block is not document else nested.type)

        check_block(document, "top-level")
        return warnings


def load_config(path: str | Path) -> Config:
    """Convenience function to load configuration from a file."""
    return ConfigLoader().load_file(path)
