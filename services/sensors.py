"""Sensor registry and the resolver that reads and writes sensor values."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Sequence

from datastore.base import KeyValueStore, StoreError, StoreKeyNotFound
from models.sensors import SensorSpec, SensorTemplate

logger = logging.getLogger(__name__)


class SensorError(Exception):
    """Base class for failures on the sensor write path."""

    def __init__(self, message: str, data_key: str) -> None:
        super().__init__(message)
        self.data_key = data_key


class UnknownSensor(SensorError):
    def __init__(self, data_key: str) -> None:
        super().__init__(f"Unknown sensor: {data_key}", data_key)


class InvalidSensorValue(SensorError):
    pass


class SensorStoreError(SensorError):
    """The store failed while writing a sensor value; the cause is chained."""


class DuplicateSensorError(ValueError):
    pass


class SensorRegistry:
    """Immutable, ordered collection of sensor specs indexed by ``data_key``."""

    def __init__(self, specs: Sequence[SensorSpec] = ()) -> None:
        index: Dict[str, SensorSpec] = {}
        for spec in specs:
            if spec.data_key in index:
                raise DuplicateSensorError(f"Sensor {spec.data_key!r} is registered twice.")
            index[spec.data_key] = spec
        self._specs = tuple(specs)
        self._index = MappingProxyType(index)

    def __iter__(self) -> Iterator[SensorSpec]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, data_key: object) -> bool:
        return data_key in self._index

    def get(self, data_key: str) -> SensorSpec:
        spec = self._index.get(data_key)
        if spec is None:
            raise UnknownSensor(data_key)
        return spec


class SensorRegistryBuilder:
    """Collects sensor registrations during startup."""

    def __init__(self) -> None:
        self._specs: List[SensorSpec] = []
        self._keys: set[str] = set()

    def register(self, template: SensorTemplate, data_key: str) -> "SensorRegistryBuilder":
        if not data_key:
            raise ValueError("Sensor data_key must not be empty.")
        if data_key in self._keys:
            raise DuplicateSensorError(f"Sensor {data_key!r} is registered twice.")
        self._keys.add(data_key)
        self._specs.append(SensorSpec(template=template, data_key=data_key))
        return self

    def build(self) -> SensorRegistry:
        return SensorRegistry(self._specs)


@dataclass(frozen=True)
class SensorReading:
    """Outcome of reading one sensor: exactly one of ``value`` and ``error`` is set."""

    spec: SensorSpec
    value: Optional[str] = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SensorResolver:
    """Reads and writes sensor values for the registered sensors."""

    def __init__(self, registry: SensorRegistry, store: KeyValueStore) -> None:
        self.registry = registry
        self.store = store

    def resolve_all(self) -> List[SensorReading]:
        readings: List[SensorReading] = []
        for spec in self.registry:
            try:
                value = self.store.get(spec.data_key)
            except StoreKeyNotFound as exc:
                logger.info(
                    "No value stored for sensor, omitting it",
                    extra={"data_key": spec.data_key},
                )
                readings.append(SensorReading(spec=spec, error=exc))
            except StoreError as exc:
                logger.warning(
                    "Could not retrieve sensor value, omitting it",
                    extra={"data_key": spec.data_key, "error": type(exc).__name__},
                )
                readings.append(SensorReading(spec=spec, error=exc))
            else:
                readings.append(SensorReading(spec=spec, value=value))
        return readings

    def validate(self, data_key: str, value: str) -> SensorSpec:
        """Check that the sensor exists and accepts ``value``, without touching the store."""
        spec = self.registry.get(data_key)
        try:
            spec.template.parse(value)
        except ValueError as exc:
            raise InvalidSensorValue(str(exc), data_key) from exc
        return spec

    def update(self, data_key: str, value: str) -> None:
        self.validate(data_key, value)
        try:
            self.store.set(data_key, value)
        except StoreError as exc:
            raise SensorStoreError(
                f"Updating value of sensor {data_key!r} failed.", data_key
            ) from exc
        logger.info("Sensor value updated", extra={"data_key": data_key})
