"""Manufacturer API: batches, code issuance and quota."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lumora.api.deps import Actor, get_db, http_error, require_manufacturer_access
from lumora.errors import LumoraError
from lumora.schemas.codes import (
    BatchCreate,
    BatchRead,
    IssueCodesRequest,
    IssueCodesResponse,
    QuotaResponse,
)
from lumora.services.code_issuance import create_batch, issue_codes_for_manufacturer
from lumora.services.quota import can_create

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{manufacturer_id}/batches", response_model=BatchRead, status_code=201)
def api_create_batch(
    manufacturer_id: int,
    data: BatchCreate,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_manufacturer_access),
) -> BatchRead:
    """Register a production batch for one of the manufacturer's products."""
    try:
        batch = create_batch(
            db,
            manufacturer_id,
            data.product_id,
            data.batch_number,
            data.expiration_date,
            quantity=data.quantity,
            manufacturing_date=data.manufacturing_date,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except LumoraError as exc:
        raise http_error(exc) from exc
    return BatchRead.model_validate(batch)


@router.post(
    "/{manufacturer_id}/batches/{batch_id}/codes",
    response_model=IssueCodesResponse,
    status_code=201,
)
def api_issue_codes(
    manufacturer_id: int,
    batch_id: int,
    data: IssueCodesRequest,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_manufacturer_access),
) -> IssueCodesResponse:
    """Issue codes for a batch under the daily quota.

    A non-zero shortfall reports a partial success when generation ran out of attempts.
    """
    try:
        result = issue_codes_for_manufacturer(db, manufacturer_id, batch_id, data.quantity)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except LumoraError as exc:
        raise http_error(exc) from exc
    return IssueCodesResponse(
        issued=result.issued,
        shortfall=result.shortfall,
        codes=[code.code_value for code in result.codes],
    )


@router.get("/{manufacturer_id}/quota", response_model=QuotaResponse)
def api_get_quota(
    manufacturer_id: int,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(require_manufacturer_access),
) -> QuotaResponse:
    """Today's code-creation usage against the plan limit."""
    try:
        quota = can_create(db, manufacturer_id)
    except LumoraError as exc:
        raise http_error(exc) from exc
    return QuotaResponse(
        used=quota.used,
        limit=quota.limit,
        remaining=quota.remaining,
        plan=quota.plan,
        percentage=quota.percentage,
        quota_exceeded=quota.quota_exceeded,
    )
