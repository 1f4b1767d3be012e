from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from datastore.base import StoreBackendError, StoreKeyNotFound

# value, absolute expiry (epoch seconds) or None
_Entry = Tuple[str, Optional[float]]

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Process-local key-value store with TTL support and optional JSON persistence.

    Expiry is checked on access; there is no background sweeper.
    """

    def __init__(
        self,
        persistence_path: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: Dict[str, _Entry] = {}
        self.persistence_path = persistence_path
        self._clock = clock
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def get(self, key: str) -> str:
        with self._lock:
            return self._live_value(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = (value, expires_at)
            self._persist()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self._persist()

    def pop(self, key: str) -> str:
        with self._lock:
            value = self._live_value(key)
            del self._entries[key]
            self._persist()
            return value

    def close(self) -> None:
        return None

    def _live_value(self, key: str) -> str:
        entry = self._entries.get(key)
        if entry is None:
            raise StoreKeyNotFound(f"Key {key!r} not found.", key=key)
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            self._persist()
            raise StoreKeyNotFound(f"Key {key!r} not found.", key=key)
        return value

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            key: {"value": value, "expires_at": expires_at}
            for key, (value, expires_at) in self._entries.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise StoreBackendError(f"Could not persist store: {exc}") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring persisted store with unexpected layout",
                extra={"error": type(data).__name__},
            )
            return

        now = self._clock()
        for key, payload in data.items():
            entry = _parse_entry(payload)
            if entry is None:
                logger.warning("Skipping malformed persisted entry", extra={"data_key": key})
                continue
            _value, expires_at = entry
            if expires_at is not None and expires_at <= now:
                continue
            self._entries[key] = entry


def _parse_entry(payload: object) -> Optional[_Entry]:
    if not isinstance(payload, dict) or not isinstance(payload.get("value"), str):
        return None
    expires_at = payload.get("expires_at")
    if expires_at is None:
        return payload["value"], None
    if isinstance(expires_at, bool) or not isinstance(expires_at, (int, float)):
        return None
    return payload["value"], float(expires_at)
