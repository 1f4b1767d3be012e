"""Assembly of the per-request status document."""

from __future__ import annotations

import logging
from typing import Optional

from models.status import Sensors, Status
from services.modifiers import ModifierChain
from services.sensors import SensorResolver

logger = logging.getLogger(__name__)


class StatusAssembler:
    """Builds the status document: baseline copy, sensor readings, modifiers, JSON."""

    def __init__(
        self,
        baseline: Status,
        resolver: SensorResolver,
        modifiers: Optional[ModifierChain] = None,
    ) -> None:
        # Private copy so later changes to the caller's object cannot leak in.
        self._baseline = baseline.model_copy(deep=True)
        self.resolver = resolver
        self.modifiers = modifiers or ModifierChain()

    @property
    def baseline(self) -> Status:
        return self._baseline.model_copy(deep=True)

    def assemble(self) -> Status:
        status = self._baseline.model_copy(deep=True)

        sensors: Optional[Sensors] = status.sensors
        for reading in self.resolver.resolve_all():
            if not reading.ok:
                continue
            if sensors is None:
                sensors = Sensors()
            try:
                reading.spec.template.render(reading.value or "", sensors)
            except ValueError as exc:
                logger.warning(
                    "Stored sensor value could not be parsed, omitting the sensor",
                    extra={"data_key": reading.spec.data_key, "error": type(exc).__name__},
                )
        # An empty section is dropped entirely rather than serialized as {}.
        status.sensors = sensors if sensors is not None and _has_readings(sensors) else None

        self.modifiers.apply(status)
        return status

    def build(self) -> str:
        return self.assemble().to_json()


def _has_readings(sensors: Sensors) -> bool:
    return any(getattr(sensors, name) for name in Sensors.model_fields)
