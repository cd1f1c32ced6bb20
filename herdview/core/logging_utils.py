"""Component-tagged loggers for herdview.

Every module asks for ``get_module_logger("Reconciler")`` and gets a
wrapper around ``logging.getLogger("herdview.Reconciler")`` whose messages
read ``[Reconciler] ...`` regardless of the handler format.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

LOGGER_NAMESPACE = "herdview"
DEFAULT_COMPONENT = "Core"


def _qualify(name: Optional[str]) -> str:
    if not name:
        return LOGGER_NAMESPACE
    if name == LOGGER_NAMESPACE or name.startswith(LOGGER_NAMESPACE + "."):
        return name
    return f"{LOGGER_NAMESPACE}.{name}"


def _component_of(logger_name: str) -> str:
    if logger_name.startswith(LOGGER_NAMESPACE):
        return logger_name[len(LOGGER_NAMESPACE):].lstrip(".") or DEFAULT_COMPONENT
    return logger_name or DEFAULT_COMPONENT


class StructuredLogger:
    """Thin wrapper that prefixes each message with ``[component]``.

    Formatting happens here rather than in the record so that a bad
    ``%`` argument list never raises out of a log call; the arguments are
    appended to the message instead.
    """

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        self._logger = logger
        self._component = component or _component_of(logger.name)

    def __getattr__(self, item: str) -> Any:
        # setLevel, isEnabledFor, handlers, ... go straight to the logger
        return getattr(self._logger, item)

    def __repr__(self) -> str:
        return f"<StructuredLogger {self._logger.name} [{self._component}]>"

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _render(self, message: object, args: tuple) -> str:
        text = str(message)
        if args:
            try:
                text %= args
            except (TypeError, ValueError):
                text += " | args=" + " ".join(map(str, args))
        tag = f"[{self._component}]"
        return text if text.startswith(tag) else f"{tag} {text}"

    def log(self, level: int, message: object, *args, **kwargs) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, self._render(message, args), **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self.log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self.log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self.log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self.log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: object, *args, **kwargs) -> None:
        self.log(logging.CRITICAL, message, *args, **kwargs)

    def getChild(self, suffix: str) -> "StructuredLogger":
        return StructuredLogger(self._logger.getChild(suffix), f"{self._component}.{suffix}")


LoggerLike = Union[StructuredLogger, logging.Logger, logging.LoggerAdapter, None]


def ensure_structured_logger(
    logger: LoggerLike,
    *,
    component: Optional[str] = None,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Wrap whatever logger a caller handed over, or make one."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        logger = logger.logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger, component)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(_qualify(name)))


__all__ = [
    "LOGGER_NAMESPACE",
    "LoggerLike",
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
