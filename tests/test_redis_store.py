"""Tests for the Redis store, run against fakeredis."""

from __future__ import annotations

import fakeredis
import pytest
import redis

from datastore.base import StoreBackendError, StoreKeyNotFound, StoreUnavailable
from datastore.redis_store import RedisStore
from models.sensors import PeopleNowPresentSensorTemplate, TemperatureSensorTemplate
from services.sensors import SensorRegistryBuilder, SensorResolver


@pytest.fixture
def store() -> RedisStore:
    return RedisStore(fakeredis.FakeRedis(decode_responses=True))


def test_round_trip(store: RedisStore) -> None:
    store.set("temp_room", "21.5")

    assert store.get("temp_room") == "21.5"

    store.delete("temp_room")
    with pytest.raises(StoreKeyNotFound):
        store.get("temp_room")


def test_set_with_ttl_expires_key(store: RedisStore) -> None:
    store.set("session:abc", "{}", ttl=300)

    ttl = store.client.ttl("session:abc")
    assert 0 < ttl <= 300


def test_pop_reads_and_deletes(store: RedisStore) -> None:
    store.set("session:abc", "record")

    assert store.pop("session:abc") == "record"
    assert store.client.exists("session:abc") == 0
    with pytest.raises(StoreKeyNotFound):
        store.pop("session:abc")


def test_bytes_replies_are_decoded() -> None:
    store = RedisStore(fakeredis.FakeRedis())
    store.set("people", "4")

    assert store.get("people") == "4"
    assert store.pop("people") == "4"


def test_connection_errors_map_to_unavailable(store: RedisStore, monkeypatch) -> None:
    def broken(*_args, **_kwargs):
        raise redis.exceptions.ConnectionError("Connection refused")

    monkeypatch.setattr(store.client, "get", broken)

    with pytest.raises(StoreUnavailable) as excinfo:
        store.get("people")
    assert excinfo.value.key == "people"
    assert isinstance(excinfo.value.__cause__, redis.exceptions.ConnectionError)


def test_timeouts_map_to_unavailable(store: RedisStore, monkeypatch) -> None:
    def slow(*_args, **_kwargs):
        raise redis.exceptions.TimeoutError("Timeout reading from socket")

    monkeypatch.setattr(store.client, "set", slow)

    with pytest.raises(StoreUnavailable):
        store.set("people", "1")


def test_protocol_errors_map_to_backend_error(store: RedisStore) -> None:
    store.client.rpush("people", "not-a-string")

    with pytest.raises(StoreBackendError):
        store.get("people")


def test_exhausted_pool_reports_unavailable() -> None:
    pool = redis.BlockingConnectionPool(
        connection_class=fakeredis.FakeConnection,
        server=fakeredis.FakeServer(),
        max_connections=1,
        timeout=0.05,
        decode_responses=True,
    )
    store = RedisStore(redis.Redis(connection_pool=pool))
    store.set("people", "1")

    held = pool.get_connection()
    try:
        with pytest.raises(StoreUnavailable):
            store.get("people")
    finally:
        pool.release(held)

    assert store.get("people") == "1"


def test_warm_up_returns_connections_to_pool() -> None:
    pool = redis.BlockingConnectionPool(
        connection_class=fakeredis.FakeConnection,
        server=fakeredis.FakeServer(),
        max_connections=2,
        timeout=0.05,
    )
    store = RedisStore(redis.Redis(connection_pool=pool))

    assert store.warm_up(2) == 2
    store.set("people", "0")
    assert store.get("people") == "0"


def _store_with_raw_writer(decode_responses: bool) -> tuple[RedisStore, redis.Redis]:
    server = fakeredis.FakeServer()
    store = RedisStore(fakeredis.FakeRedis(server=server, decode_responses=decode_responses))
    return store, fakeredis.FakeRedis(server=server)


@pytest.mark.parametrize("decode_responses", [False, True])
def test_invalid_utf8_value_maps_to_backend_error(decode_responses: bool) -> None:
    store, raw = _store_with_raw_writer(decode_responses)
    raw.set("temp_room", b"\xff\xfe")

    with pytest.raises(StoreBackendError) as excinfo:
        store.get("temp_room")
    assert excinfo.value.key == "temp_room"


def test_invalid_utf8_session_record_is_still_consumed() -> None:
    store, raw = _store_with_raw_writer(decode_responses=False)
    raw.set("session:abc", b"\xff")

    with pytest.raises(StoreBackendError):
        store.pop("session:abc")
    assert raw.exists("session:abc") == 0


def test_invalid_utf8_value_only_omits_its_sensor() -> None:
    store, raw = _store_with_raw_writer(decode_responses=False)
    raw.set("temp_room", b"\xff\xfe")
    raw.set("people", b"3")
    registry = (
        SensorRegistryBuilder()
        .register(TemperatureSensorTemplate(unit="°C", location="Room"), "temp_room")
        .register(PeopleNowPresentSensorTemplate(location="Hackerspace"), "people")
        .build()
    )

    readings = SensorResolver(registry, store).resolve_all()

    assert [reading.ok for reading in readings] == [False, True]
    assert isinstance(readings[0].error, StoreBackendError)
    assert readings[1].value == "3"
