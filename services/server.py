"""Wiring of the store, sensors, modifiers and sessions into a server instance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from datastore.base import KeyValueStore
from datastore.memory_store import InMemoryStore
from datastore.redis_store import RedisStore
from models.config import ModifierName, load_server_config
from models.sensors import SensorTemplate
from models.status import Status
from services.assembler import StatusAssembler
from services.modifiers import (
    LibraryVersions,
    ModifierChain,
    OpenStateFromStore,
    StateFromPeopleNowPresent,
    StatusModifier,
)
from services.sensors import SensorRegistryBuilder, SensorResolver
from services.sessions import DEFAULT_SESSION_TTL, SessionManager
from settings import MEMORY_STORE_URL, get_settings

logger = logging.getLogger(__name__)


@dataclass
class SpaceapiServer:
    """Everything the HTTP layer needs to serve reads and authorized writes."""

    store: KeyValueStore
    sensors: SensorResolver
    assembler: StatusAssembler
    sessions: SessionManager

    def close(self) -> None:
        self.store.close()


class SpaceapiServerBuilder:
    """Startup-time registration of sensors and modifiers::

        server = (
            SpaceapiServerBuilder(status)
            .store(InMemoryStore())
            .add_sensor(PeopleNowPresentSensorTemplate(location="Hackerspace"), "people")
            .add_status_modifier(StateFromPeopleNowPresent())
            .build()
        )
    """

    def __init__(self, status: Status) -> None:
        self._status = status
        self._store: Optional[KeyValueStore] = None
        self._sensors = SensorRegistryBuilder()
        self._modifiers: List[StatusModifier] = []
        self._session_ttl = DEFAULT_SESSION_TTL

    def store(self, store: KeyValueStore) -> "SpaceapiServerBuilder":
        self._store = store
        return self

    def add_sensor(self, template: SensorTemplate, data_key: str) -> "SpaceapiServerBuilder":
        self._sensors.register(template, data_key)
        return self

    def add_status_modifier(self, modifier: StatusModifier) -> "SpaceapiServerBuilder":
        self._modifiers.append(modifier)
        return self

    def session_ttl(self, seconds: int) -> "SpaceapiServerBuilder":
        self._session_ttl = seconds
        return self

    def build(self) -> SpaceapiServer:
        if self._store is None:
            raise ValueError("A key-value store must be configured before building the server.")
        registry = self._sensors.build()
        resolver = SensorResolver(registry, self._store)
        assembler = StatusAssembler(self._status, resolver, ModifierChain(self._modifiers))
        sessions = SessionManager(self._store, registry, ttl=self._session_ttl)
        return SpaceapiServer(
            store=self._store,
            sensors=resolver,
            assembler=assembler,
            sessions=sessions,
        )


def build_modifier(name: ModifierName, store: KeyValueStore) -> StatusModifier:
    if name is ModifierName.state_from_people_now_present:
        return StateFromPeopleNowPresent()
    if name is ModifierName.library_versions:
        return LibraryVersions()
    if name is ModifierName.open_state_from_store:
        return OpenStateFromStore(store)
    raise ValueError(f"Unknown modifier {name!r}.")


@lru_cache
def build_default_store(
    url: Optional[str] = None,
    persistence_path: Optional[str] = None,
) -> KeyValueStore:
    settings = get_settings()
    store_url = settings.store_url if url is None else url
    if store_url.startswith(MEMORY_STORE_URL):
        path = settings.store_persistence_path if persistence_path is None else persistence_path
        return InMemoryStore(persistence_path=Path(path) if path else None)
    return RedisStore.from_url(
        store_url,
        max_connections=settings.pool_max_size,
        min_idle=settings.pool_min_idle,
        pool_timeout=settings.pool_timeout,
        socket_timeout=settings.socket_timeout,
    )


@lru_cache
def build_default_server(config_path: Optional[str] = None) -> SpaceapiServer:
    """Factory that wires the server from settings and the JSON config file."""
    settings = get_settings()
    path = Path(config_path or settings.config_path)
    config = load_server_config(path)
    store = build_default_store()

    builder = SpaceapiServerBuilder(config.status).store(store).session_ttl(settings.session_ttl)
    for registration in config.sensors:
        builder.add_sensor(registration.template, registration.data_key)
    for name in config.modifiers:
        builder.add_status_modifier(build_modifier(name, store))

    logger.info(
        "Server configured with %d sensor(s) and %d modifier(s) from %s",
        len(config.sensors),
        len(config.modifiers),
        path,
    )
    return builder.build()
