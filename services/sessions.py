"""Single-use, signed update sessions authorizing one sensor write.

Protocol:

1. The agent asks for a session for a sensor and receives ``session_id`` and a
   hex-encoded ``secret``. The record is stored with a TTL.
2. The agent computes ``HMAC-SHA256(secret, canonical_message(sensor, value))``
   and sends it as a lowercase hex ``signature`` along with the value and the
   ``session_id``.
3. The server atomically takes the record out of the store before checking
   the signature, so every verification attempt, good or bad, uses the
   session up.

The canonical message is the UTF-8 encoding of the compact JSON array
``["<sensor_key>","<value>"]``. It is a wire contract shared with clients.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable

from datastore.base import KeyValueStore, StoreError, StoreKeyNotFound
from services.sensors import SensorRegistry

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
DEFAULT_SESSION_TTL = 300
SECRET_BYTES = 32
SIGNATURE_HEX_LENGTH = hashlib.sha256().digest_size * 2


class SessionError(Exception):
    """Base class for session failures."""


class SessionNotFound(SessionError):
    """Unknown, already consumed or expired-and-evicted session."""


class SessionExpired(SessionError):
    pass


class SignatureMismatch(SessionError):
    pass


class MalformedSignature(SessionError):
    """The signature is not a hex encoded SHA-256 digest."""


class SessionStoreError(SessionError):
    """The store failed while creating or verifying a session; the cause is chained."""


@dataclass(frozen=True)
class SessionToken:
    session_id: str
    secret: str


def canonical_message(sensor_key: str, value: str) -> bytes:
    return json.dumps([sensor_key, value], ensure_ascii=False, separators=(",", ":")).encode(
        "utf-8"
    )


def sign(secret: str, sensor_key: str, value: str) -> str:
    """Sign an update with the hex ``secret`` handed out at session creation."""
    key = bytes.fromhex(secret)
    return hmac.new(key, canonical_message(sensor_key, value), hashlib.sha256).hexdigest()


def parse_signature(signature: str) -> bytes:
    candidate = signature.strip()
    if len(candidate) != SIGNATURE_HEX_LENGTH:
        raise MalformedSignature("Signature must be a hex encoded HMAC-SHA256 digest.")
    try:
        return bytes.fromhex(candidate)
    except ValueError as exc:
        raise MalformedSignature("Signature must be a hex encoded HMAC-SHA256 digest.") from exc


class SessionManager:
    """Issues and verifies update sessions stored in the key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        registry: SensorRegistry,
        ttl: int = DEFAULT_SESSION_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl <= 0:
            raise ValueError("Session TTL must be positive.")
        self.store = store
        self.registry = registry
        self.ttl = ttl
        self._clock = clock

    def create_session(self, sensor_key: str) -> SessionToken:
        # Raises UnknownSensor before anything is written.
        self.registry.get(sensor_key)

        session_id = secrets.token_urlsafe(16)
        secret = secrets.token_bytes(SECRET_BYTES)
        record = {
            "sensor_key": sensor_key,
            "secret": secret.hex(),
            "issued_at": self._clock(),
        }
        try:
            self.store.set(_session_key(session_id), json.dumps(record), ttl=self.ttl)
        except StoreError as exc:
            raise SessionStoreError("Could not persist update session.") from exc

        logger.info(
            "Update session created",
            extra={"sensor": sensor_key, "session_id": session_id},
        )
        return SessionToken(session_id=session_id, secret=secret.hex())

    def verify_and_consume(
        self, session_id: str, signature: str, sensor_key: str, value: str
    ) -> None:
        """Check ``signature`` for ``(sensor_key, value)`` and use the session up.

        Raises ``SessionNotFound``, ``SessionExpired``, ``SignatureMismatch``,
        ``MalformedSignature`` or ``SessionStoreError``. The stored record is
        removed before any of the checks run.
        """
        try:
            raw = self.store.pop(_session_key(session_id))
        except StoreKeyNotFound as exc:
            raise SessionNotFound("Session not found.") from exc
        except StoreError as exc:
            raise SessionStoreError("Could not load update session.") from exc

        try:
            record = json.loads(raw)
            bound_sensor = str(record["sensor_key"])
            secret = bytes.fromhex(record["secret"])
            issued_at = float(record["issued_at"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding corrupt session record", extra={"session_id": session_id})
            raise SessionNotFound("Session not found.") from exc

        supplied = parse_signature(signature)

        if self._clock() >= issued_at + self.ttl:
            raise SessionExpired("Session expired.")

        expected = hmac.new(secret, canonical_message(sensor_key, value), hashlib.sha256).digest()
        signature_ok = hmac.compare_digest(expected, supplied)
        if bound_sensor != sensor_key or not signature_ok:
            logger.warning(
                "Rejected update with invalid signature",
                extra={"sensor": sensor_key, "session_id": session_id},
            )
            raise SignatureMismatch("Signature does not match.")

        logger.info("Update session verified", extra={"sensor": sensor_key, "session_id": session_id})


def _session_key(session_id: str) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"
