"""Filesystem locations used by herdview."""

from __future__ import annotations

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_ROOT.parent

# Configuration
CONFIG_PATH = PROJECT_ROOT / "config.txt"

# User-specific state (lets the bot run from a read-only checkout)
_USER_STATE_ENV = os.environ.get("HERDVIEW_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".herdview")
STATE_FILE = USER_STATE_DIR / "state.json"
LOGS_DIR = USER_STATE_DIR / "logs"
LOG_FILE = LOGS_DIR / "herdview.log"


def ensure_directories() -> None:
    """Create the state and log directories if they don't exist."""
    USER_STATE_DIR.mkdir(parents=True, exist_ok=True)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "CONFIG_PATH",
    "USER_STATE_DIR",
    "STATE_FILE",
    "LOGS_DIR",
    "LOG_FILE",
    "ensure_directories",
]
