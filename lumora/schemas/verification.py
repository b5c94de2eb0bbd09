"""Verification schemas: consumer scan request and outcome response."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from lumora.models.enums import TrustDecision, VerificationState


class VerifyRequest(BaseModel):
    """A consumer scan. Malformed codes are accepted and classified INVALID."""

    code_value: str
    manufacturer_id: int | None = Field(None, gt=0)
    latitude: float | None = None
    longitude: float | None = None
    consent_geo: bool = False


class BatchInfoResponse(BaseModel):
    batch_id: int
    batch_number: str
    product_name: str | None
    manufacturer_name: str | None
    expiration_date: date
    expired: bool

    model_config = ConfigDict(from_attributes=True)


class VerifyResponse(BaseModel):
    state: VerificationState
    base_state: VerificationState
    code_value: str
    batch_info: BatchInfoResponse | None = None
    recall_flag: bool
    prior_scan_count: int
    trust_decision: TrustDecision
    verified_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VerificationLogRead(BaseModel):
    id: int
    code_value: str
    verification_state: str
    manufacturer_id: int | None
    batch_id: int | None
    latitude: float | None
    longitude: float | None
    location_accuracy: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
