"""Hotspot schemas: risk oracle output and admin API responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class HotspotPrediction(BaseModel):
    """One zone returned by the risk oracle. Field names follow the oracle's camelCase."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    riskScore: float = Field(..., ge=0, le=1)
    advisory: str = Field(..., min_length=1)
    codeValue: str | None = None

    model_config = ConfigDict(extra="ignore")


class HotspotListResponse(BaseModel):
    window_days: int
    hotspots: list[HotspotPrediction]


class ExternalAnalysisRequest(BaseModel):
    code_value: str = Field(..., min_length=1, max_length=64)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


class ExternalAnalysisResponse(BaseModel):
    code_value: str
    prediction: HotspotPrediction | None


class HotspotAdvisoryRead(BaseModel):
    id: int
    latitude: float
    longitude: float
    risk_score: float
    advisory: str
    window_days: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
