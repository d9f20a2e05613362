"""
hash-trend CLI entry point.

Follow the TRON chain head, sample blocks by rule, and serve the sampled
views over HTTP.

Usage::

    python -m hash_trend --api-key 0f1e2d3c-...
    python -m hash_trend --config hash-trend.yaml --port 8080
    TRON_API_KEY=0f1e2d3c-... python -m hash_trend --rule 20

Options:
    --config     Path to a YAML session config
    --api-key    TronGrid API key (default: config file, then $TRON_API_KEY)
    --api-url    TronGrid API root (default: https://api.trongrid.io)
    --host       Address the HTTP API binds to (default: 127.0.0.1)
    --port       Port the HTTP API listens on (default: 8080)
    --rule       Id of the sampling rule to activate at start
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path

from hash_trend.api import ApiServer, ApiServerConfig
from hash_trend.config import API_KEY_ENV_VAR, SessionConfig
from hash_trend.session import SyncSession

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)

        timestamp = self.formatTime(record, self.datefmt)
        colored_time = f"{self.CYAN}{timestamp}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"

        return f"{colored_time} {levelname} {name}: {record.getMessage()}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure logging for the service with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # httpx logs every request at INFO; one line per block is too chatty.
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def load_config(
    config_path: Path | None,
    api_key: str | None = None,
    api_url: str | None = None,
    rule: str | None = None,
) -> SessionConfig:
    """
    Build the session config from file, flags and environment.

    Flags override the file. The environment only fills a credential that
    neither provided.
    """
    config = SessionConfig.from_yaml_file(config_path) if config_path else SessionConfig()
    config = config.with_overrides(api_key=api_key, api_url=api_url, active_rule=rule)
    return config.with_env_credential()


async def run_service(session: SyncSession, api_config: ApiServerConfig) -> None:
    """
    Run the poll loop and the API server until SIGINT or SIGTERM.

    Both run in one task group. A shutdown signal stops both; the session's
    source is closed on the way out.
    """
    shutdown = asyncio.Event()
    server = ApiServer(config=api_config, session=session)

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown.set)
    except (NotImplementedError, RuntimeError):
        # Signal handlers are unavailable outside the main thread and on Windows.
        pass

    async def wait_shutdown() -> None:
        await shutdown.wait()
        session.stop()
        server.stop()

    if not session.has_credential:
        logger.warning(
            "No API key configured (use --api-key or $%s); polling stays idle",
            API_KEY_ENV_VAR,
        )

    try:
        async with asyncio.TaskGroup() as tg:
            tg.create_task(session.run())
            tg.create_task(server.run())
            tg.create_task(wait_shutdown())
    finally:
        await session.close()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="TRON block sampler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a YAML session config",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help=f"TronGrid API key (default: config file, then ${API_KEY_ENV_VAR})",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help="TronGrid API root (default: https://api.trongrid.io)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Address the HTTP API binds to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port the HTTP API listens on (default: 8080)",
    )
    parser.add_argument(
        "--rule",
        default=None,
        help="Id of the sampling rule to activate at start",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )

    args = parser.parse_args()

    setup_logging(args.verbose, args.no_color)

    try:
        config = load_config(args.config, args.api_key, args.api_url, args.rule)
    except (OSError, ValueError) as e:
        parser.error(f"Invalid configuration: {e}")

    session = SyncSession(config=config)
    api_config = ApiServerConfig(host=args.host, port=args.port)

    try:
        asyncio.run(run_service(session, api_config))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
