"""
Entry point for metrics plugins.

Usage:
    python -m metrics_plugin /etc/metrics-plugin/cpu.conf
    python -m metrics_plugin --daemon --pidfile /run/cpu-plugin.pid cpu.conf
    python -m metrics_plugin --help
"""

import argparse
import asyncio
import sys
from pathlib import Path

from . import __version__
from .app import build_log_config, run_app
from .config.loader import ConfigError, ConfigLoader
from .config.schema import Config
from .const import EXIT_ERROR, EXIT_OK
from .logging import LogConfig, get_logger, setup_logging
from .utils.process import daemonize, remove_pidfile, write_pidfile


logger = get_logger("main")


def print_summary(config: Config, warnings: list[str]) -> None:
    """Print validation results."""
    if warnings:
        print(f"Configuration warnings ({len(warnings)}):")
        for warning in warnings:
            print(f"  - {warning}")

    print("\nConfiguration summary:")
    print(f"  Daemon broker: {config.daemon.host}:{config.daemon.port}")
    print(f"  Topic prefix: {config.daemon.topic_prefix}")
    if config.plugin:
        plugin = config.plugin
        print(f"  Plugin: {plugin.name}")
        print(f"  Interval: {plugin.interval.value}")
        print(f"  Protocol: {plugin.protocol.value}")
        print(f"  Lead time: {plugin.lead_time:g}s")
        print(f"  System sampler: {'enabled' if plugin.system else 'disabled'}")
        print(f"  Command sources: {len(plugin.commands)}")
    print(f"  Logging level: {config.logging.level}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="metrics-plugin",
        description="Sample host statistics and publish them to the monitoring daemon",
    )

    parser.add_argument(
        "config",
        nargs="?",
        default="/etc/metrics-plugin/plugin.conf",
        help="Path to configuration file (default: /etc/metrics-plugin/plugin.conf)",
    )
    parser.add_argument("--daemon", action="store_true", help="Run in the background")
    parser.add_argument("--pidfile", metavar="PATH", help="Write the process id to PATH")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging (INFO level)")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging (DEBUG level)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode (only errors)")
    parser.add_argument("--log-file", metavar="PATH", help="Write logs to file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--syslog", action="store_true", help="Also log to syslog")
    parser.add_argument("--validate", action="store_true", help="Validate configuration and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def cli_log_config(args: argparse.Namespace) -> LogConfig | None:
    """Logging settings forced from the command line, if any."""
    if not (args.debug or args.verbose or args.quiet or args.no_color or args.log_file or args.syslog):
        return None

    log_config = LogConfig()
    if args.debug:
        log_config.console_level = "debug"
    elif args.verbose:
        log_config.console_level = "info"
    elif args.quiet:
        log_config.console_level = "error"
    else:
        log_config.console_level = "warning"

    if args.no_color:
        log_config.console_colors = False
    if args.log_file:
        log_config.file_enabled = True
        log_config.file_path = args.log_file
    if args.syslog:
        log_config.syslog_enabled = True

    return log_config


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Configuration file not found: {config_path}", file=sys.stderr)
        return EXIT_ERROR

    loader = ConfigLoader()
    try:
        config = loader.load_file(config_path)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    warnings = loader.validate(config)

    if args.validate:
        print_summary(config, warnings)
        if config.plugin is None:
            return EXIT_ERROR
        print("\nConfiguration is valid!")
        return EXIT_OK

    if config.plugin is None:
        print("Configuration error: no plugin block configured", file=sys.stderr)
        return EXIT_ERROR

    # Fork before anything creates threads or an event loop
    if args.daemon:
        daemonize()

    setup_logging(build_log_config(config.logging, args.daemon, cli_log_config(args)))
    logger.debug("Daemonized" if args.daemon else "Not daemonizing")

    for warning in warnings:
        logger.warning(f"Config warning: {warning}")

    if args.pidfile:
        logger.debug(f"Storing process id into {args.pidfile}")
        try:
            write_pidfile(args.pidfile)
        except OSError as e:
            logger.error(f"Cannot write pid file {args.pidfile}: {e}")
            return EXIT_ERROR

    try:
        return asyncio.run(run_app(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_OK
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_ERROR
    finally:
        if args.pidfile:
            remove_pidfile(args.pidfile)


if __name__ == "__main__":
    sys.exit(main())
