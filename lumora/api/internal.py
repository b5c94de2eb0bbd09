"""Internal job endpoints for cron/scripts.

These endpoints are secured with a static token (X-Internal-Token header).
They are meant for automated triggers only.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lumora.api.deps import get_db, get_forensic_oracles, get_oracle, require_internal_token
from lumora.forensics.oracles import TamperDetector, TextExtractor
from lumora.forensics.worker import process_available
from lumora.services.hotspots import run_hotspot_scan
from lumora.services.risk_oracle import RiskOracle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", include_in_schema=False)


@router.post("/run_forensics_worker")
def run_forensics_worker(
    max_jobs: int = Query(25, ge=1, le=500),
    db: Session = Depends(get_db),
    _token: None = Depends(require_internal_token),
    oracles: tuple[TamperDetector, TextExtractor] = Depends(get_forensic_oracles),
):
    """Drain due forensics jobs (up to max_jobs). Returns the batch summary."""
    detector, extractor = oracles
    try:
        return process_available(db, detector, extractor, max_jobs=max_jobs)
    except Exception as exc:
        logger.exception("Internal forensics run failed")
        return {"status": "failed", "error": str(exc)}


@router.post("/run_hotspot_scan")
def run_hotspot_scan_endpoint(
    window_days: int | None = Query(None, ge=1, le=365),
    db: Session = Depends(get_db),
    _token: None = Depends(require_internal_token),
    oracle: RiskOracle = Depends(get_oracle),
):
    """Compute hotspots and persist them as advisories. Returns the JobRun summary."""
    return run_hotspot_scan(db, oracle, window_days)
