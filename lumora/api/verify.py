"""Consumer verification API."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lumora.api.deps import get_db, http_error
from lumora.errors import StorageError
from lumora.schemas.verification import VerifyRequest, VerifyResponse
from lumora.services.verification import GeoPoint, verify

router = APIRouter()


@router.post("", response_model=VerifyResponse)
def api_verify(data: VerifyRequest, db: Session = Depends(get_db)) -> VerifyResponse:
    """Verify a printed code. Unknown or malformed codes come back as INVALID, never as errors."""
    geo = None
    if data.latitude is not None and data.longitude is not None:
        geo = GeoPoint(data.latitude, data.longitude)
    try:
        outcome = verify(
            db,
            data.code_value,
            manufacturer_hint_id=data.manufacturer_id,
            geo=geo,
            consent_geo=data.consent_geo,
        )
    except StorageError as exc:
        raise http_error(exc) from exc
    return VerifyResponse.model_validate(outcome)
