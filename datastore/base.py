"""Key-value store contract shared by the sensor and session layers."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


class StoreError(Exception):
    """Base class for every failure raised by a key-value store."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class StoreKeyNotFound(StoreError, KeyError):
    """The key is absent (never written, deleted or expired)."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class StoreUnavailable(StoreError):
    """No connection could be acquired or the backend could not be reached in time."""


class StoreBackendError(StoreError):
    """The backend answered, but with a protocol-level error."""


@runtime_checkable
class KeyValueStore(Protocol):
    """String-keyed, string-valued store.

    Implementations must be safe to share between concurrent requests.
    ``ttl`` is expressed in seconds; expired keys behave exactly like absent ones.
    """

    def get(self, key: str) -> str:
        """Return the value stored under ``key``. Raises ``StoreKeyNotFound``."""
        ...

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""
        ...

    def pop(self, key: str) -> str:
        """Atomically read and delete ``key``. Raises ``StoreKeyNotFound``."""
        ...

    def close(self) -> None:
        ...
