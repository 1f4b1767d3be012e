"""Sensor templates: static sensor metadata plus the rules for rendering a raw value."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.status import HumiditySensor, PeopleNowPresentSensor, Sensors, TemperatureSensor


def _parse_count(raw: str) -> int:
    candidate = raw.strip()
    if not candidate.isdecimal():
        raise ValueError(f"Expected a non-negative integer, got {raw!r}.")
    return int(candidate)


def _parse_finite_float(raw: str) -> float:
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Expected a number, got {raw!r}.") from exc
    if not math.isfinite(value):
        raise ValueError(f"Expected a finite number, got {raw!r}.")
    return value


class _TemplateBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Optional[str] = None
    description: Optional[str] = None


class PeopleNowPresentSensorTemplate(_TemplateBase):
    type: Literal["people_now_present"] = "people_now_present"
    location: Optional[str] = None
    names: Optional[List[str]] = None

    def parse(self, raw: str) -> int:
        return _parse_count(raw)

    def render(self, raw: str, sensors: Sensors) -> None:
        sensors.people_now_present.append(
            PeopleNowPresentSensor(
                value=self.parse(raw),
                location=self.location,
                name=self.name,
                names=list(self.names) if self.names is not None else None,
                description=self.description,
            )
        )


class TemperatureSensorTemplate(_TemplateBase):
    type: Literal["temperature"] = "temperature"
    unit: str
    location: str

    def parse(self, raw: str) -> float:
        return _parse_finite_float(raw)

    def render(self, raw: str, sensors: Sensors) -> None:
        sensors.temperature.append(
            TemperatureSensor(
                value=self.parse(raw),
                unit=self.unit,
                location=self.location,
                name=self.name,
                description=self.description,
            )
        )


class HumiditySensorTemplate(_TemplateBase):
    type: Literal["humidity"] = "humidity"
    unit: str = "%"
    location: str

    def parse(self, raw: str) -> float:
        return _parse_finite_float(raw)

    def render(self, raw: str, sensors: Sensors) -> None:
        sensors.humidity.append(
            HumiditySensor(
                value=self.parse(raw),
                unit=self.unit,
                location=self.location,
                name=self.name,
                description=self.description,
            )
        )


SensorTemplate = Annotated[
    Union[PeopleNowPresentSensorTemplate, TemperatureSensorTemplate, HumiditySensorTemplate],
    Field(discriminator="type"),
]


@dataclass(frozen=True)
class SensorSpec:
    """A registered sensor: its template and the store key holding its value."""

    template: SensorTemplate
    data_key: str
