"""Forensics API: reanalysis requests and job status."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lumora.api.deps import Actor, get_db, http_error, require_role
from lumora.errors import LumoraError
from lumora.forensics.pipeline import request_reanalysis
from lumora.models import ForensicsJob
from lumora.models.enums import ActorRole
from lumora.schemas.forensics import ForensicsJobRead, ReanalysisRequest

router = APIRouter()

_manufacturer_or_admin = require_role(ActorRole.MANUFACTURER, ActorRole.ADMIN)


@router.post("/reanalysis", response_model=ForensicsJobRead, status_code=202)
def api_request_reanalysis(
    data: ReanalysisRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(_manufacturer_or_admin),
) -> ForensicsJobRead:
    """Queue a fresh forensics run on the certificate already on file."""
    manufacturer_id = data.manufacturer_id
    if manufacturer_id is None:
        if actor.role == ActorRole.ADMIN:
            raise HTTPException(status_code=422, detail="manufacturer_id is required for admins")
        try:
            manufacturer_id = int(actor.id)
        except ValueError:
            raise HTTPException(status_code=403, detail="Actor is not a manufacturer id") from None
    try:
        job = request_reanalysis(db, manufacturer_id, actor.id, actor.role.value)
    except LumoraError as exc:
        raise http_error(exc) from exc
    return ForensicsJobRead.model_validate(job)


@router.get("/jobs/{job_id}", response_model=ForensicsJobRead)
def api_get_job(
    job_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(_manufacturer_or_admin),
) -> ForensicsJobRead:
    """Status of one forensics job. Manufacturers only see their own."""
    job = db.get(ForensicsJob, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Forensics job not found")
    if actor.role == ActorRole.MANUFACTURER and actor.id != str(job.manufacturer_id):
        raise HTTPException(status_code=404, detail="Forensics job not found")
    return ForensicsJobRead.model_validate(job)
