"""Forensics schemas: reanalysis requests, job status and admin trust overrides."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from lumora.models.enums import TrustStatus


class ReanalysisRequest(BaseModel):
    """Manufacturers may omit manufacturer_id (defaults to themselves); admins must set it."""

    manufacturer_id: int | None = Field(None, gt=0)


class ForensicsJobRead(BaseModel):
    id: int
    manufacturer_id: int
    status: str
    attempts: int
    max_attempts: int
    score: float | None
    ai_status: str | None
    reasons: list[str] | None
    error_message: str | None
    created_at: datetime
    finished_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class TrustOverrideRequest(BaseModel):
    status: TrustStatus
    reason: str | None = Field(None, max_length=500)


class ManufacturerTrustRead(BaseModel):
    id: int
    name: str
    ai_score: float | None
    ai_status: str | None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
