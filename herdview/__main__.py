"""Command-line entrypoint: ``python -m herdview`` or ``herdview``."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from herdview.app import HerdViewApp
from herdview.chat.transport import ConsoleChatTransport
from herdview.compositor.obs_websocket import ObsWebSocketClient
from herdview.core.config_manager import load_settings_async
from herdview.core.logging_config import configure_logging
from herdview.core.logging_utils import get_module_logger
from herdview.core.paths import CONFIG_PATH, ensure_directories
from herdview.core.state_store import JsonStateStore

logger = get_module_logger("herdview")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="HerdView - chat-driven camera window layout for OBS Studio"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help="Path to the key = value config file (default: config.txt)"
    )

    parser.add_argument(
        "--obs-url",
        type=str,
        default=None,
        help="obs-websocket URL (default from config, ws://127.0.0.1:4455)"
    )

    parser.add_argument(
        "--log-level",
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        default=None,
        help="Logging level (default from config, info)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this rotating file"
    )

    parser.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        default=True,
        help="Log to file only"
    )

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> None:
    settings = (await load_settings_async(args.config)).with_overrides(
        obs_url=args.obs_url,
        log_level=args.log_level,
        log_file=args.log_file,
    )

    configure_logging(
        settings.log_level,
        console=args.console_output,
        log_file=settings.log_file,
        force=True,
    )
    logger.info("Starting herdview against %s", settings.obs_url)

    app = HerdViewApp(
        settings,
        client=ObsWebSocketClient(settings.obs_url, request_timeout=settings.request_timeout),
        transport=ConsoleChatTransport(channel=settings.chat_channel),
        store=JsonStateStore(settings.state_file),
    )
    await app.run()


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    ensure_directories()
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
