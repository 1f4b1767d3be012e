"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SessionResponse(BaseModel):
    """Credentials for one sensor update. The secret is only ever sent here."""

    session_id: str = Field(..., description="Opaque identifier of the update session.")
    secret: str = Field(..., description="Hex encoded HMAC key for signing the update.")


class SensorUpdateRequest(BaseModel):
    """Signed sensor update."""

    model_config = ConfigDict(extra="forbid")

    value: str = Field(..., description="New sensor value, exactly as signed.")
    session_id: str = Field(..., min_length=1)
    signature: str = Field(
        ..., description="Lowercase hex HMAC-SHA256 over the canonical update message."
    )


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    reason: str
