"""Redis-backed key-value store using a bounded, blocking connection pool."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from datastore.base import StoreBackendError, StoreKeyNotFound, StoreUnavailable

logger = logging.getLogger(__name__)


class RedisStore:
    """``KeyValueStore`` implementation on top of redis-py.

    Every command checks a connection out of the pool and redis-py hands it
    back in a ``finally`` block, so connections are returned on error paths
    too. With a ``BlockingConnectionPool`` an exhausted pool makes callers wait
    up to the pool timeout and then fail with ``ConnectionError``, which is
    reported as ``StoreUnavailable``.

    Replies are fetched as bytes and decoded here, so a value that is not
    valid UTF-8 fails only the key it belongs to, as ``StoreBackendError``.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        max_connections: int = 6,
        min_idle: int = 2,
        pool_timeout: float = 1.0,
        socket_timeout: float = 2.0,
    ) -> "RedisStore":
        pool = redis.BlockingConnectionPool.from_url(
            url,
            max_connections=max_connections,
            timeout=pool_timeout,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        store = cls(redis.Redis(connection_pool=pool))
        store.warm_up(min(min_idle, max_connections))
        return store

    @property
    def client(self) -> redis.Redis:
        return self._client

    def get(self, key: str) -> str:
        with self._translate_errors("get", key):
            value = self._client.get(key)
            if value is None:
                raise StoreKeyNotFound(f"Key {key!r} not found.", key=key)
            return _as_text(value)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        with self._translate_errors("set", key):
            self._client.set(key, value, ex=ttl)

    def delete(self, key: str) -> None:
        with self._translate_errors("delete", key):
            self._client.delete(key)

    def pop(self, key: str) -> str:
        # MULTI/EXEC keeps the read and the delete atomic without requiring GETDEL.
        with self._translate_errors("pop", key):
            pipe = self._client.pipeline(transaction=True)
            pipe.get(key)
            pipe.delete(key)
            value, _deleted = pipe.execute()
            if value is None:
                raise StoreKeyNotFound(f"Key {key!r} not found.", key=key)
            return _as_text(value)

    def warm_up(self, connections: int) -> int:
        """Open up to ``connections`` idle connections ahead of the first request.

        Returns how many were opened. An unreachable backend is logged, not
        raised: the service starts and reports the store as unavailable per request.
        """
        pool = self._client.connection_pool
        acquired = []
        try:
            for _ in range(connections):
                acquired.append(pool.get_connection())
        except RedisError as exc:
            logger.warning(
                "Could not pre-open Redis connections",
                extra={"error": type(exc).__name__},
            )
        finally:
            for connection in acquired:
                pool.release(connection)
        return len(acquired)

    def close(self) -> None:
        self._client.connection_pool.disconnect()

    @contextmanager
    def _translate_errors(self, operation: str, key: str) -> Iterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as exc:
            raise StoreUnavailable(
                f"Redis unavailable during {operation} of {key!r}: {exc}", key=key
            ) from exc
        except RedisError as exc:
            raise StoreBackendError(
                f"Redis error during {operation} of {key!r}: {exc}", key=key
            ) from exc
        except UnicodeDecodeError as exc:
            raise StoreBackendError(
                f"Value of {key!r} is not valid UTF-8 ({operation})", key=key
            ) from exc


def _as_text(value: Union[str, bytes]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value
