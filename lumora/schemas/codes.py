"""Code issuance, batch and quota schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


class BatchCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    batch_number: str = Field(..., min_length=1, max_length=64)
    expiration_date: date
    manufacturing_date: date | None = None
    quantity: int = Field(0, ge=0)


class BatchRead(BaseModel):
    id: int
    batch_number: str
    manufacturer_id: int
    product_id: int
    quantity: int
    manufacturing_date: date | None
    expiration_date: date
    is_recalled: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BatchRecallRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class IssueCodesRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class IssueCodesResponse(BaseModel):
    """Issued codes. A non-zero shortfall means generation ran out of attempts."""

    issued: int
    shortfall: int
    codes: list[str]


class QuotaResponse(BaseModel):
    used: int
    limit: int
    remaining: int
    plan: str
    percentage: float
    quota_exceeded: bool
