"""Schema of the JSON configuration file read at startup."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from models.sensors import SensorTemplate
from models.status import Status


class ModifierName(str, Enum):
    """Built-in status modifiers that can be enabled from configuration."""

    state_from_people_now_present = "state_from_people_now_present"
    library_versions = "library_versions"
    open_state_from_store = "open_state_from_store"


class SensorRegistration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_key: str = Field(..., min_length=1)
    template: SensorTemplate


class ServerConfig(BaseModel):
    """Static status document plus the sensors and modifiers to wire up."""

    status: Status
    sensors: List[SensorRegistration] = Field(default_factory=list)
    modifiers: List[ModifierName] = Field(
        default_factory=lambda: [
            ModifierName.state_from_people_now_present,
            ModifierName.library_versions,
        ]
    )


def load_server_config(path: Path) -> ServerConfig:
    """Read and validate the configuration file. Raises ``FileNotFoundError``."""
    return ServerConfig.model_validate_json(path.read_text(encoding="utf-8"))
