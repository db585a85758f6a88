"""Application entry point and CLI for inbox-targeting.

Parses command-line arguments, loads configuration, sets up logging and runs
the HTTP service until SIGINT or SIGTERM.

Architecture:
- No provider-specific code or references (maintains plugin isolation)
- The configured push provider is resolved through the plugin registry
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import NoReturn

from aiohttp import web

from inbox_targeting.api.app import create_app
from inbox_targeting.core.config import (
    DEFAULT_CONFIG_PATH,
    ConfigurationError,
    EnvironmentVariableError,
    load_main_config,
)
from inbox_targeting.plugins import PluginLoaderError
from inbox_targeting.storage import MessageParseError
from inbox_targeting.utils.logging import configure_logging

__all__ = ["main"]

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_RUNTIME_ERROR = 1


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    CLI Arguments:
        --config, -c: Path to main configuration file
        --dry-run: Log pushes instead of delivering them
        --log-level: Override log level from config
        --no-syslog: Disable syslog integration
        --host / --port: Override the listener address
    """
    parser = argparse.ArgumentParser(
        prog="inbox-targeting",
        description="Serve inbox, banner and push-registration endpoints for the municipal app",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  inbox-targeting
  inbox-targeting --config /etc/inbox-targeting.yaml
  inbox-targeting --dry-run --log-level DEBUG --no-syslog
        """,
    )

    _ = parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to main configuration file (default: {DEFAULT_CONFIG_PATH})",
        metavar="PATH",
    )
    _ = parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry-run mode: compute targeting but do not deliver pushes (overrides config)",
    )
    _ = parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override log level from configuration",
        metavar="LEVEL",
    )
    _ = parser.add_argument(
        "--no-syslog",
        action="store_true",
        help="Disable syslog integration (useful for development)",
    )
    _ = parser.add_argument("--host", type=str, help="Override listen host", metavar="HOST")
    _ = parser.add_argument("--port", type=int, help="Override listen port", metavar="PORT")

    return parser.parse_args(argv)


async def async_main(
    *,
    config_path: Path,
    dry_run: bool = False,
    log_level: str | None = None,
    enable_syslog: bool = True,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Load configuration and serve until a shutdown signal arrives.

    Raises:
        ConfigurationError: If configuration is invalid
        EnvironmentVariableError: If a referenced environment variable is missing
        PluginLoaderError: If the configured push provider cannot be loaded
    """
    logger = logging.getLogger(__name__)
    logger.info("Loading configuration from %s", config_path)
    config = load_main_config(config_path)

    if dry_run:
        config.push.dry_run = True
    if log_level is not None:
        config.application.log_level = log_level
    if host is not None:
        config.server.host = host
    if port is not None:
        config.server.port = port

    configure_logging(
        log_level=config.application.log_level,
        enable_syslog=enable_syslog and config.application.syslog_enabled,
        enable_console=True,
    )
    logger = logging.getLogger(__name__)
    logger.info("inbox-targeting starting")

    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server.host, config.server.port)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await site.start()
        logger.info("Listening on %s:%d", config.server.host, config.server.port)
        _ = await shutdown.wait()
        logger.info("Shutdown signal received")
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            _ = loop.remove_signal_handler(sig)
        await runner.cleanup()
        logger.info("inbox-targeting shutdown complete")


def main(argv: list[str] | None = None) -> NoReturn:
    """Console entry point.

    Exit Codes:
        0: Clean shutdown
        1: Configuration error or runtime error
    """
    args = parse_arguments(argv)

    try:
        config_path_arg: Path = args.config  # pyright: ignore[reportAny]  # argparse boundary
        dry_run_arg: bool = args.dry_run  # pyright: ignore[reportAny]  # argparse boundary
        log_level_arg: str | None = args.log_level  # pyright: ignore[reportAny]  # argparse boundary
        no_syslog_arg: bool = args.no_syslog  # pyright: ignore[reportAny]  # argparse boundary
        host_arg: str | None = args.host  # pyright: ignore[reportAny]  # argparse boundary
        port_arg: int | None = args.port  # pyright: ignore[reportAny]  # argparse boundary

        asyncio.run(
            async_main(
                config_path=config_path_arg,
                dry_run=dry_run_arg,
                log_level=log_level_arg,
                enable_syslog=not no_syslog_arg,
                host=host_arg,
                port=port_arg,
            )
        )

    except ConfigurationError as exc:
        print(f"Configuration error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except EnvironmentVariableError as exc:
        print(f"Environment variable error:\n{exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except (PluginLoaderError, MessageParseError) as exc:
        print(f"Startup error: {exc}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    except KeyboardInterrupt:
        print("\nShutdown complete", file=sys.stderr)
        sys.exit(EXIT_SUCCESS)

    except Exception as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        logging.exception("Unexpected error during application execution")
        sys.exit(EXIT_RUNTIME_ERROR)

    sys.exit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
