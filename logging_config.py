"""Logging setup for the server: one stream handler, ``key=value`` context suffixes.

Session ids are shortened in log lines. Session lifecycle events from
``services.sessions`` are kept at INFO or lower even when ``LOG_LEVEL`` asks
for less, so issued and rejected sessions stay traceable.
"""

from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Mapping, Sequence

from settings import get_settings

_CONTEXT_KEYS = (
    "data_key",
    "sensor",
    "session_id",
    "modifier",
    "reason",
    "status_code",
    "error",
)

# Context values that only need to be recognisable, not reproducible.
_SHORTENED_KEYS = {"session_id": 8}

_THIRD_PARTY_LEVELS: Mapping[str, str] = {
    "redis": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "uvicorn.access": "WARNING",
}

_AUDIT_LOGGERS = ("services.sessions",)

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends whitelisted ``extra=`` fields to the message, timestamps in UTC."""

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        context_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._context_keys: Sequence[str] = tuple(context_keys or _CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._context_keys:
            value = getattr(record, key, None)
            if value is not None:
                context_parts.append(f"{key}={_render_value(key, value)}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def _render_value(key: str, value: Any) -> str:
    text = str(value)
    limit = _SHORTENED_KEYS.get(key)
    if limit is not None and len(text) > limit:
        text = f"{text[:limit]}…"
    if not text or any(char.isspace() for char in text):
        return repr(text)
    return text


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.upper())
    return number if isinstance(number, int) else logging.INFO


def build_logging_config(level: str | int) -> Dict[str, Any]:
    """``dictConfig`` schema for the given root level."""
    root_level = _level_number(level)
    loggers: Dict[str, Dict[str, Any]] = {
        name: {"level": third_party_level} for name, third_party_level in _THIRD_PARTY_LEVELS.items()
    }
    for name in _AUDIT_LOGGERS:
        loggers[name] = {"level": min(root_level, logging.INFO)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)sZ %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "context_keys": list(_CONTEXT_KEYS),
            }
        },
        # Levels live on the loggers; the handler passes everything it receives.
        "handlers": {
            "stream": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
            }
        },
        "loggers": loggers,
        "root": {"handlers": ["stream"], "level": root_level},
    }


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Install the server's logging configuration once per process."""
    global _configured
    if _configured and not force:
        return

    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
