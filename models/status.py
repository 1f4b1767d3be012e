"""SpaceAPI status document models.

Only the fields the server reads or writes are modelled explicitly. Unknown
top-level keys (``ext_*`` extensions, feeds, events and so on) are kept as
pydantic extras and serialized back unchanged.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

SPACEAPI_VERSION = "0.13"


class Location(BaseModel):
    model_config = ConfigDict(extra="allow")

    address: Optional[str] = None
    lat: float
    lon: float


class Contact(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None
    irc: Optional[str] = None
    ml: Optional[str] = None
    phone: Optional[str] = None
    twitter: Optional[str] = None
    jabber: Optional[str] = None
    issue_mail: Optional[str] = None


class State(BaseModel):
    model_config = ConfigDict(extra="allow")

    open: Optional[bool] = None
    lastchange: Optional[int] = None
    trigger_person: Optional[str] = None
    message: Optional[str] = None


class PeopleNowPresentSensor(BaseModel):
    value: int = Field(..., ge=0)
    location: Optional[str] = None
    name: Optional[str] = None
    names: Optional[List[str]] = None
    description: Optional[str] = None


class TemperatureSensor(BaseModel):
    value: float
    unit: str
    location: str
    name: Optional[str] = None
    description: Optional[str] = None


class HumiditySensor(BaseModel):
    value: float
    unit: str = "%"
    location: str
    name: Optional[str] = None
    description: Optional[str] = None


class Sensors(BaseModel):
    """The dynamic ``sensors`` section, one list per sensor kind."""

    people_now_present: List[PeopleNowPresentSensor] = Field(default_factory=list)
    temperature: List[TemperatureSensor] = Field(default_factory=list)
    humidity: List[HumiditySensor] = Field(default_factory=list)


class Status(BaseModel):
    """A complete status document.

    The static part comes from configuration; ``sensors`` and ``state`` are
    filled per request on a deep copy.
    """

    model_config = ConfigDict(extra="allow")

    api: str = SPACEAPI_VERSION
    space: str
    logo: str
    url: str
    location: Location
    contact: Contact
    issue_report_channels: List[str] = Field(default_factory=list)
    state: Optional[State] = None
    sensors: Optional[Sensors] = None
    projects: Optional[List[str]] = None

    def set_extension(self, name: str, value: Any) -> None:
        """Set the ``ext_<name>`` extension field."""
        setattr(self, f"ext_{name}", value)

    def get_extension(self, name: str) -> Any:
        return (self.model_extra or {}).get(f"ext_{name}")

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(mode="json", exclude_none=True)
        sensors = payload.get("sensors")
        if sensors is not None:
            payload["sensors"] = {kind: items for kind, items in sensors.items() if items}
        return payload

    def to_json(self) -> str:
        """Serialize to compact JSON, dropping nulls and empty sensor lists."""
        return json.dumps(self.to_payload(), ensure_ascii=False, separators=(",", ":"))
