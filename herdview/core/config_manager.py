"""Configuration loading for herdview.

Configuration lives in a plain ``key = value`` text file::

    # OBS connection
    obs_url = ws://127.0.0.1:4455

    # source kinds that count as camera windows
    window_kinds = ffmpeg_source, vlc_source
    fudge_factor = 0.8
    retry_delay = 5

Values are kept as strings by :class:`ConfigManager` and converted into a
typed :class:`ViewSettings` once at startup.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import aiofiles

from .logging_utils import get_module_logger
from .paths import STATE_FILE

logger = get_module_logger("ConfigManager")

DEFAULT_WINDOW_KINDS = (
    "ffmpeg_source",
    "vlc_source",
    "dshow_input",
    "v4l2_input",
    "av_capture_input",
)


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    @staticmethod
    def _parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            # inline comments need a space before '#' so "#channel" survives
            if value[:1] in ('"', "'"):
                end = value.find(value[0], 1)
                if end != -1:
                    value = value[1:end]
            elif ' #' in value:
                value = value.split(' #', 1)[0].strip()

            config[key] = value

        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Read a config file synchronously. A missing file yields an empty dict."""
        if not config_path.exists():
            self.logger.debug("No config file at %s", config_path)
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return self._parse_config_lines(f)
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version for use inside the event loop."""
        if not await asyncio.to_thread(config_path.exists):
            self.logger.debug("No config file at %s", config_path)
            return {}

        try:
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                lines = await f.readlines()
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", config_path, e)
            return {}

        return self._parse_config_lines(lines)

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default

        value = config[key].lower()
        return value in ('true', '1', 'yes', 'on')

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        if key not in config:
            return default

        try:
            return int(config[key])
        except ValueError:
            self.logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        if key not in config:
            return default

        try:
            return float(config[key])
        except ValueError:
            self.logger.warning("Invalid float value for %s: %s, using default %f", key, config[key], default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)

    def get_list(self, config: Dict[str, str], key: str, default: Iterable[str] = ()) -> List[str]:
        if key not in config:
            return list(default)
        return [item.strip() for item in config[key].split(',') if item.strip()]


@dataclass(frozen=True)
class ViewSettings:
    """Typed settings consumed by the view engine, compositor client and chat bot."""

    obs_url: str = "ws://127.0.0.1:4455"
    window_kinds: frozenset = frozenset(DEFAULT_WINDOW_KINDS)
    fudge_factor: float = 0.8
    retry_delay: float = 5.0
    retry_disabled: bool = False
    max_attempts: int = 10
    request_timeout: float = 10.0
    state_file: Path = STATE_FILE
    chat_channel: str = "#herd"
    bot_name: str = "HerdBoss"
    subscriber_only: bool = True
    blocked_users: frozenset = field(default_factory=frozenset)
    log_level: str = "info"
    log_file: Optional[Path] = None

    @classmethod
    def from_config(cls, config: Dict[str, str], manager: Optional[ConfigManager] = None) -> "ViewSettings":
        cm = manager or get_config_manager()
        defaults = cls()

        fudge = cm.get_float(config, "fudge_factor", defaults.fudge_factor)
        if not 0.0 < fudge <= 1.0:
            logger.warning("fudge_factor %s outside (0, 1], using %s", fudge, defaults.fudge_factor)
            fudge = defaults.fudge_factor

        log_file = cm.get_str(config, "log_file")
        return cls(
            obs_url=cm.get_str(config, "obs_url", defaults.obs_url),
            window_kinds=frozenset(cm.get_list(config, "window_kinds", DEFAULT_WINDOW_KINDS)),
            fudge_factor=fudge,
            retry_delay=max(0.0, cm.get_float(config, "retry_delay", defaults.retry_delay)),
            retry_disabled=cm.get_bool(config, "retry_disabled", defaults.retry_disabled),
            max_attempts=max(0, cm.get_int(config, "max_attempts", defaults.max_attempts)),
            request_timeout=cm.get_float(config, "request_timeout", defaults.request_timeout),
            state_file=Path(cm.get_str(config, "state_file", str(defaults.state_file))).expanduser(),
            chat_channel=cm.get_str(config, "chat_channel", defaults.chat_channel),
            bot_name=cm.get_str(config, "bot_name", defaults.bot_name),
            subscriber_only=cm.get_bool(config, "subscriber_only", defaults.subscriber_only),
            blocked_users=frozenset(u.lower() for u in cm.get_list(config, "blocked_users")),
            log_level=cm.get_str(config, "log_level", defaults.log_level),
            log_file=Path(log_file).expanduser() if log_file else None,
        )

    def with_overrides(self, **overrides: Any) -> "ViewSettings":
        """Return a copy with non-None overrides applied (CLI flags win over the file)."""
        known = {f.name for f in fields(self)}
        updates = {k: v for k, v in overrides.items() if v is not None and k in known}
        return replace(self, **updates)


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager


def load_settings(config_path: Path) -> ViewSettings:
    """Read ``config_path`` and build :class:`ViewSettings` from it."""
    return ViewSettings.from_config(get_config_manager().read_config(config_path))


async def load_settings_async(config_path: Path) -> ViewSettings:
    return ViewSettings.from_config(await get_config_manager().read_config_async(config_path))


__all__ = [
    "ConfigManager",
    "DEFAULT_WINDOW_KINDS",
    "ViewSettings",
    "get_config_manager",
    "load_settings",
    "load_settings_async",
]
