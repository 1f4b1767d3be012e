from __future__ import annotations

import pytest

from datastore.base import StoreBackendError, StoreKeyNotFound, StoreUnavailable
from datastore.memory_store import InMemoryStore
from models.sensors import (
    HumiditySensorTemplate,
    PeopleNowPresentSensorTemplate,
    SensorSpec,
    TemperatureSensorTemplate,
)
from models.status import Sensors
from services.sensors import (
    DuplicateSensorError,
    InvalidSensorValue,
    SensorRegistry,
    SensorRegistryBuilder,
    SensorResolver,
    SensorStoreError,
    UnknownSensor,
)
from conftest import FlakyStore


def _registry() -> SensorRegistry:
    return (
        SensorRegistryBuilder()
        .register(PeopleNowPresentSensorTemplate(location="Hackerspace"), "people")
        .register(TemperatureSensorTemplate(unit="°C", location="Room"), "temp_room")
        .register(HumiditySensorTemplate(location="Room"), "humidity_room")
        .build()
    )


def test_builder_rejects_duplicate_data_keys() -> None:
    builder = SensorRegistryBuilder().register(PeopleNowPresentSensorTemplate(), "people")

    with pytest.raises(DuplicateSensorError):
        builder.register(TemperatureSensorTemplate(unit="°C", location="Room"), "people")


def test_registry_constructor_rejects_duplicates() -> None:
    spec = SensorSpec(template=PeopleNowPresentSensorTemplate(), data_key="people")

    with pytest.raises(DuplicateSensorError):
        SensorRegistry([spec, spec])


def test_registry_keeps_registration_order_and_lookup() -> None:
    registry = _registry()

    assert [spec.data_key for spec in registry] == ["people", "temp_room", "humidity_room"]
    assert len(registry) == 3
    assert "temp_room" in registry
    assert registry.get("temp_room").template.unit == "°C"
    with pytest.raises(UnknownSensor):
        registry.get("door")


def test_resolve_all_isolates_failures() -> None:
    store = FlakyStore(failing_keys={"temp_room"})
    store.set("people", "3")
    store.set("humidity_room", "40")
    resolver = SensorResolver(_registry(), store)

    readings = resolver.resolve_all()

    assert [reading.spec.data_key for reading in readings] == [
        "people",
        "temp_room",
        "humidity_room",
    ]
    assert readings[0].ok and readings[0].value == "3"
    assert not readings[1].ok and isinstance(readings[1].error, StoreUnavailable)
    assert readings[2].ok and readings[2].value == "40"


def test_resolve_all_reports_missing_keys() -> None:
    resolver = SensorResolver(_registry(), InMemoryStore())

    readings = resolver.resolve_all()

    assert all(isinstance(reading.error, StoreKeyNotFound) for reading in readings)


def test_update_writes_value() -> None:
    store = InMemoryStore()
    resolver = SensorResolver(_registry(), store)

    resolver.update("temp_room", "21.5")

    assert store.get("temp_room") == "21.5"


def test_update_unknown_sensor_does_not_touch_store() -> None:
    store = FlakyStore()
    resolver = SensorResolver(_registry(), store)

    with pytest.raises(UnknownSensor) as excinfo:
        resolver.update("door", "open")

    assert excinfo.value.data_key == "door"
    assert store.writes == []


@pytest.mark.parametrize(
    ("data_key", "value"),
    [("people", "-1"), ("people", "two"), ("temp_room", "warm"), ("temp_room", "nan")],
)
def test_update_rejects_malformed_values(data_key: str, value: str) -> None:
    store = FlakyStore()
    resolver = SensorResolver(_registry(), store)

    with pytest.raises(InvalidSensorValue):
        resolver.update(data_key, value)
    assert store.writes == []


def test_update_wraps_store_failures() -> None:
    resolver = SensorResolver(_registry(), FlakyStore(failing_keys={"*"}, error=StoreBackendError("boom")))

    with pytest.raises(SensorStoreError) as excinfo:
        resolver.update("people", "1")

    assert isinstance(excinfo.value.__cause__, StoreBackendError)


def test_templates_render_into_their_sections() -> None:
    sensors = Sensors()

    PeopleNowPresentSensorTemplate(location="Hackerspace", names=["alice"]).render(" 2 ", sensors)
    TemperatureSensorTemplate(unit="°C", location="Room").render("-3.5", sensors)
    HumiditySensorTemplate(location="Cellar").render("61", sensors)

    assert sensors.people_now_present[0].value == 2
    assert sensors.people_now_present[0].names == ["alice"]
    assert sensors.temperature[0].value == -3.5
    assert sensors.humidity[0].unit == "%"
    assert sensors.humidity[0].value == 61.0
