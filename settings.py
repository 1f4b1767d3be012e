from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_CONFIG_PATH_ENV = "SPACEAPI_CONFIG_PATH"
_STORE_URL_ENV = "SPACEAPI_STORE_URL"
_STORE_PATH_ENV = "SPACEAPI_STORE_PERSISTENCE_PATH"
_POOL_MAX_SIZE_ENV = "REDIS_POOL_MAX_SIZE"
_POOL_MIN_IDLE_ENV = "REDIS_POOL_MIN_IDLE"
_POOL_TIMEOUT_ENV = "REDIS_POOL_TIMEOUT"
_SOCKET_TIMEOUT_ENV = "REDIS_SOCKET_TIMEOUT"
_SESSION_TTL_ENV = "SESSION_TTL_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"

MEMORY_STORE_URL = "memory://"


@dataclass(frozen=True)
class Settings:
    config_path: str
    store_url: str
    store_persistence_path: Optional[str]
    pool_max_size: int
    pool_min_idle: int
    pool_timeout: float
    socket_timeout: float
    session_ttl: int
    log_level: str

    @property
    def uses_memory_store(self) -> bool:
        return self.store_url.startswith(MEMORY_STORE_URL)


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int_env(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    max_size = _read_int_env(_POOL_MAX_SIZE_ENV, 6)
    min_idle = _read_int_env(_POOL_MIN_IDLE_ENV, 2, minimum=0)
    return Settings(
        config_path=_read_str_env(_CONFIG_PATH_ENV, "./spaceapi.json"),
        store_url=_read_str_env(_STORE_URL_ENV, "redis://127.0.0.1:6379/0"),
        store_persistence_path=_read_optional_env(_STORE_PATH_ENV, None),
        pool_max_size=max_size,
        pool_min_idle=min(min_idle, max_size),
        pool_timeout=_read_float_env(_POOL_TIMEOUT_ENV, 1.0),
        socket_timeout=_read_float_env(_SOCKET_TIMEOUT_ENV, 2.0),
        session_ttl=_read_int_env(_SESSION_TTL_ENV, 300),
        log_level=_read_log_level("INFO"),
    )
