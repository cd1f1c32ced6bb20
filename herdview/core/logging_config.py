"""Process-wide logging setup for herdview.

Everything logs through ``herdview.<Component>`` loggers (see
``logging_utils``); this module only decides where those records end up:
stdout, a rotating file under the state directory, or both.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 500 * 1024
LOG_FILE_BACKUPS = 2

# aiohttp logs every websocket frame at DEBUG
DEFAULT_SUPPRESSED_LOGGERS = ("aiohttp.client", "aiohttp.internal", "asyncio")

_configured = False


def coerce_level(level: Union[int, str]) -> int:
    """Turn ``"info"`` / ``"WARNING"`` / ``20`` into a numeric level."""
    if not isinstance(level, str):
        return int(level)
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level '{level}'")
    return value


def _drop_handlers(root: logging.Logger) -> None:
    while root.handlers:
        handler = root.handlers[0]
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()


def _rotating_file(path: Union[str, Path]) -> RotatingFileHandler:
    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        log_path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    force: bool = False,
    console: bool = True,
    log_file: Optional[Union[str, Path]] = None,
    suppressed_loggers: Iterable[str] = DEFAULT_SUPPRESSED_LOGGERS,
) -> None:
    """Install the herdview handlers on the root logger.

    A second call without ``force`` only adjusts the levels.

    Args:
        level: Level name or number applied to the root logger and handlers.
        force: Rebuild the handlers even when already configured.
        console: Emit to stdout.
        log_file: Optional rotating log file.
        suppressed_loggers: Noisy library loggers held at WARNING or above.
    """
    global _configured
    numeric_level = coerce_level(level)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    if not _configured or force:
        _drop_handlers(root)

        handlers: List[logging.Handler] = []
        if console:
            handlers.append(logging.StreamHandler(sys.stdout))
        if log_file:
            handlers.append(_rotating_file(log_file))

        formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
        for handler in handlers:
            handler.setFormatter(formatter)
            root.addHandler(handler)
        if not handlers:
            root.addHandler(logging.NullHandler())
        _configured = True

    for handler in root.handlers:
        handler.setLevel(numeric_level)
    for name in suppressed_loggers:
        logging.getLogger(name).setLevel(max(logging.WARNING, numeric_level))


__all__ = ["configure_logging", "coerce_level", "LOG_FORMAT", "LOG_DATEFMT"]
