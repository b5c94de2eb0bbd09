"""Admin API: trust overrides, recalls, audit trail and hotspot intelligence."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from lumora.api.deps import Actor, get_db, get_oracle, http_error, require_role
from lumora.errors import LumoraError
from lumora.forensics.pipeline import override_trust_status
from lumora.models.enums import ActorRole
from lumora.schemas.audit import AuditLogList, AuditLogRead
from lumora.schemas.codes import BatchRead, BatchRecallRequest
from lumora.schemas.forensics import ManufacturerTrustRead, TrustOverrideRequest
from lumora.schemas.hotspots import (
    ExternalAnalysisRequest,
    ExternalAnalysisResponse,
    HotspotAdvisoryRead,
    HotspotListResponse,
)
from lumora.schemas.verification import VerificationLogRead
from lumora.services.audit import list_audit_logs
from lumora.services.code_issuance import recall_batch
from lumora.services.hotspots import analyze_external_product, compute_hotspots, latest_advisories
from lumora.services.risk_oracle import RiskOracle
from lumora.services.verification import get_scan_history

router = APIRouter()

_admin = require_role(ActorRole.ADMIN)


@router.post("/manufacturers/{manufacturer_id}/trust-override", response_model=ManufacturerTrustRead)
def api_trust_override(
    manufacturer_id: int,
    data: TrustOverrideRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(_admin),
) -> ManufacturerTrustRead:
    """Set a manufacturer's trust status by hand. Audited."""
    try:
        manufacturer = override_trust_status(db, manufacturer_id, data.status, actor.id, data.reason)
    except LumoraError as exc:
        raise http_error(exc) from exc
    return ManufacturerTrustRead.model_validate(manufacturer)


@router.post("/batches/{batch_id}/recall", response_model=BatchRead)
def api_recall_batch(
    batch_id: int,
    data: BatchRecallRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(_admin),
) -> BatchRead:
    """Flag a batch as recalled. Its codes keep verifying with a recall warning."""
    try:
        batch = recall_batch(db, batch_id, actor.id, actor.role.value, data.reason)
    except LumoraError as exc:
        raise http_error(exc) from exc
    return BatchRead.model_validate(batch)


@router.get("/audit-logs", response_model=AuditLogList)
def api_list_audit_logs(
    action: str | None = Query(None, max_length=64),
    actor_id: str | None = Query(None, max_length=64),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(_admin),
) -> AuditLogList:
    logs = list_audit_logs(db, action=action, actor_id=actor_id, limit=limit)
    return AuditLogList(items=[AuditLogRead.model_validate(log) for log in logs])


@router.get("/verification-logs", response_model=list[VerificationLogRead])
def api_scan_history(
    code_value: str = Query(..., min_length=1, max_length=256),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(_admin),
) -> list[VerificationLogRead]:
    """Every recorded scan of one code, oldest first."""
    return [VerificationLogRead.model_validate(log) for log in get_scan_history(db, code_value)]


@router.get("/hotspots", response_model=HotspotListResponse)
def api_hotspots(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(_admin),
    oracle: RiskOracle = Depends(get_oracle),
) -> HotspotListResponse:
    """Live hotspot analysis over the trailing window."""
    hotspots = compute_hotspots(db, days, oracle)
    return HotspotListResponse(window_days=days, hotspots=hotspots)


@router.get("/hotspots/advisories", response_model=list[HotspotAdvisoryRead])
def api_hotspot_advisories(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    _actor: Actor = Depends(_admin),
) -> list[HotspotAdvisoryRead]:
    """Advisories persisted by the periodic hotspot scan, newest first."""
    return [HotspotAdvisoryRead.model_validate(a) for a in latest_advisories(db, limit)]


@router.post("/external-analysis", response_model=ExternalAnalysisResponse)
def api_external_analysis(
    data: ExternalAnalysisRequest,
    db: Session = Depends(get_db),
    _actor: Actor = Depends(_admin),
    oracle: RiskOracle = Depends(get_oracle),
) -> ExternalAnalysisResponse:
    """Risk prediction for a single unregistered product scan."""
    if (data.latitude is None) != (data.longitude is None):
        raise HTTPException(status_code=422, detail="latitude and longitude must be given together")
    code_value = data.code_value.strip().upper()
    prediction = analyze_external_product(db, code_value, data.latitude, data.longitude, oracle)
    return ExternalAnalysisResponse(code_value=code_value, prediction=prediction)
