"""
Logging configuration for metrics plugins.

Features:
- Console output with optional colors (foreground mode only)
- File output with rotation
- Syslog output on a configurable facility (local0 by default)
- Per-module log level configuration
"""

import logging
import logging.handlers
import sys
from dataclasses import dataclass
from pathlib import Path


ROOT_LOGGER = "metrics_plugin"


class Colors:
    """ANSI color codes."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_BLUE = "\033[94m"


LEVEL_COLORS = {
    logging.DEBUG: Colors.DIM + Colors.CYAN,
    logging.INFO: Colors.GREEN,
    logging.WARNING: Colors.YELLOW,
    logging.ERROR: Colors.RED,
    logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
}

# Matched against the logger name, first hit wins
COMPONENT_COLORS = {
    "supervisor": Colors.GREEN,
    "timing": Colors.BRIGHT_BLUE,
    "writer": Colors.MAGENTA,
    "daemon": Colors.BLUE,
    "collector": Colors.CYAN,
    "config": Colors.MAGENTA,
}

SYSLOG_FACILITIES = {
    "user": logging.handlers.SysLogHandler.LOG_USER,
    "daemon": logging.handlers.SysLogHandler.LOG_DAEMON,
    "local0": logging.handlers.SysLogHandler.LOG_LOCAL0,
    "local1": logging.handlers.SysLogHandler.LOG_LOCAL1,
    "local2": logging.handlers.SysLogHandler.LOG_LOCAL2,
    "local3": logging.handlers.SysLogHandler.LOG_LOCAL3,
    "local4": logging.handlers.SysLogHandler.LOG_LOCAL4,
    "local5": logging.handlers.SysLogHandler.LOG_LOCAL5,
    "local6": logging.handlers.SysLogHandler.LOG_LOCAL6,
    "local7": logging.handlers.SysLogHandler.LOG_LOCAL7,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level, component and message of a record."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        saved = record.levelname, record.name, record.msg

        record.levelname = f"{LEVEL_COLORS.get(record.levelno, '')}{record.levelname:8}{Colors.RESET}"

        for key, color in COMPONENT_COLORS.items():
            if key in record.name.lower():
                record.name = f"{color}{record.name}{Colors.RESET}"
                break

        if record.levelno >= logging.ERROR:
            record.msg = f"{Colors.RED}{record.msg}{Colors.RESET}"
        elif record.levelno >= logging.WARNING:
            record.msg = f"{Colors.YELLOW}{record.msg}{Colors.RESET}"

        try:
            return super().format(record)
        finally:
            record.levelname, record.name, record.msg = saved


class PlainFormatter(logging.Formatter):
    """Plain formatter without colors for file output."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = f"{record.levelname:8}"
        return super().format(record)


@dataclass
class LogConfig:
    """Logging configuration."""

    # Console settings (disabled once the plugin runs in the background)
    console_enabled: bool = True
    console_level: str = "INFO"
    console_colors: bool = True

    # File settings
    file_enabled: bool = False
    file_path: str = "/var/log/metrics-plugin/plugin.log"
    file_level: str = "DEBUG"
    file_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    file_backup_count: int = 5

    # Syslog settings
    syslog_enabled: bool = False
    syslog_facility: str = "local0"
    syslog_address: str = "/dev/log"
    syslog_level: str = "INFO"
    syslog_ident: str = "metrics-plugin"

    # Format
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    # Per-module levels (module_name -> level)
    module_levels: dict[str, str] | None = None


def get_log_level(level_str: str) -> int:
    """Convert string log level to logging constant."""
    levels = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "warn": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }
    return levels.get(level_str.lower(), logging.INFO)


def get_syslog_facility(name: str) -> int:
    """
    Convert a facility name to its syslog constant.

    Raises:
        ValueError: If the facility is unknown
    """
    try:
        return SYSLOG_FACILITIES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown syslog facility: {name}") from None


def _make_syslog_handler(config: LogConfig) -> logging.Handler:
    handler = logging.handlers.SysLogHandler(
        address=config.syslog_address,
        facility=get_syslog_facility(config.syslog_facility),
    )
    handler.ident = f"{config.syslog_ident}: "
    handler.setLevel(get_log_level(config.syslog_level))
    handler.setFormatter(logging.Formatter("%(name)s [%(levelname)s] %(message)s"))
    return handler


def setup_logging(config: LogConfig | None = None) -> None:
    """
    Configure logging for the plugin.

    Args:
        config: Logging configuration (uses defaults if None)
    """
    if config is None:
        config = LogConfig()

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handlers

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if config.console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(get_log_level(config.console_level))

        use_colors = config.console_colors and hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
        console_handler.setFormatter(ColoredFormatter(
            fmt=config.format,
            datefmt=config.date_format,
            use_colors=use_colors,
        ))
        root_logger.addHandler(console_handler)

    if config.file_enabled:
        log_path = Path(config.file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setLevel(get_log_level(config.file_level))
        file_handler.setFormatter(PlainFormatter(
            fmt=config.format,
            datefmt=config.date_format,
        ))
        root_logger.addHandler(file_handler)

    if config.syslog_enabled:
        try:
            root_logger.addHandler(_make_syslog_handler(config))
        except OSError as e:
            # No syslog socket (containers, minimal hosts); keep the other sinks
            root_logger.warning(f"Syslog unavailable at {config.syslog_address}: {e}")

    if config.module_levels:
        for module_name, level_str in config.module_levels.items():
            get_logger(module_name).setLevel(get_log_level(level_str))

    # Reduce noise from external libraries
    logging.getLogger("aiomqtt").setLevel(logging.WARNING)
    logging.getLogger("paho").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a component.

    Args:
        name: Component name (will be prefixed with metrics_plugin)

    Returns:
        Logger instance
    """
    if name.startswith(ROOT_LOGGER):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
