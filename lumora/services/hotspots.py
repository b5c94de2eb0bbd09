"""Hotspot risk aggregator: verification logs -> geographic risk advisories.

Read-only against the log store, so it is safe to run alongside live
verification traffic. The oracle is never called for an empty sample.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from lumora.config import get_settings
from lumora.errors import OracleDegradedError
from lumora.models import HotspotAdvisory, JobRun, VerificationLog
from lumora.models.enums import FRAUD_SIGNAL_STATES, VerificationState
from lumora.schemas.hotspots import HotspotPrediction
from lumora.services.risk_oracle import HOTSPOT_TASK, RiskOracle, parse_predictions

logger = logging.getLogger(__name__)

JOB_TYPE_HOTSPOT_SCAN = "hotspot_scan"

_EXTERNAL_STATES = (
    VerificationState.UNREGISTERED_PRODUCT.value,
    VerificationState.SUSPICIOUS_PATTERN.value,
)


def _to_record(log: VerificationLog) -> dict[str, Any]:
    """Privacy filter: only the four fields the oracle contract allows."""
    return {
        "codeValue": log.code_value,
        "latitude": log.latitude,
        "longitude": log.longitude,
        "verificationState": log.verification_state,
    }


def build_hotspot_sample(
    db: Session,
    window_days: int,
    sample_limit: int,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Newest geo-tagged fraud-signal scans in the trailing window, bounded by *sample_limit*."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=window_days)
    logs = (
        db.query(VerificationLog)
        .filter(
            VerificationLog.created_at >= cutoff,
            VerificationLog.verification_state.in_(sorted(FRAUD_SIGNAL_STATES)),
            VerificationLog.latitude.is_not(None),
            VerificationLog.longitude.is_not(None),
        )
        .order_by(VerificationLog.created_at.desc(), VerificationLog.id.desc())
        .limit(sample_limit)
        .all()
    )
    return [_to_record(log) for log in logs]


def _ask_oracle(oracle: RiskOracle, records: list[dict[str, Any]]) -> list[HotspotPrediction]:
    try:
        raw = oracle.analyze(records, HOTSPOT_TASK)
    except OracleDegradedError:
        logger.warning("Risk oracle degraded; returning no hotspots")
        return []
    except Exception:
        logger.exception("Risk oracle failed unexpectedly; returning no hotspots")
        return []
    return parse_predictions(raw)


def compute_hotspots(
    db: Session,
    window_days: int,
    oracle: RiskOracle,
    sample_limit: int | None = None,
    now: datetime | None = None,
) -> list[HotspotPrediction]:
    """Score geographic hotspots over the trailing *window_days*.

    Returns [] without contacting the oracle when there is nothing to analyse,
    and [] when the oracle's answer is malformed.
    """
    if window_days < 1:
        raise ValueError("window_days must be positive")
    if sample_limit is None:
        sample_limit = get_settings().hotspot_sample_limit

    records = build_hotspot_sample(db, window_days, sample_limit, now=now)
    if not records:
        logger.info("Hotspots: no fraud-signal scans in last %d days; oracle skipped", window_days)
        return []

    predictions = _ask_oracle(oracle, records)
    logger.info(
        "Hotspots: window_days=%d sample=%d hotspots=%d",
        window_days,
        len(records),
        len(predictions),
    )
    return predictions


def analyze_external_product(
    db: Session,
    code_value: str,
    latitude: float | None,
    longitude: float | None,
    oracle: RiskOracle,
    sample_limit: int | None = None,
) -> HotspotPrediction | None:
    """Ad-hoc risk prediction for one unregistered scan.

    A small sample of recent similar scans gives the oracle context. The
    prediction naming this code is preferred; otherwise the first one.
    """
    if sample_limit is None:
        sample_limit = get_settings().external_sample_limit

    recent = (
        db.query(VerificationLog)
        .filter(VerificationLog.verification_state.in_(_EXTERNAL_STATES))
        .order_by(VerificationLog.created_at.desc(), VerificationLog.id.desc())
        .limit(sample_limit)
        .all()
    )
    records = [_to_record(log) for log in recent]
    records.append(
        {
            "codeValue": code_value,
            "latitude": latitude,
            "longitude": longitude,
            "verificationState": VerificationState.UNREGISTERED_PRODUCT.value,
        }
    )

    predictions = _ask_oracle(oracle, records)
    if not predictions:
        return None
    for prediction in predictions:
        if prediction.codeValue == code_value:
            return prediction
    return predictions[0]


def run_hotspot_scan(
    db: Session,
    oracle: RiskOracle,
    window_days: int | None = None,
) -> dict:
    """Periodic job: compute hotspots and persist them as advisories for admin tooling.

    Creates a JobRun record for audit.

    Returns:
        dict with status, job_run_id, advisories_created, error.
    """
    if window_days is None:
        window_days = get_settings().hotspot_window_days

    job = JobRun(job_type=JOB_TYPE_HOTSPOT_SCAN, status="running")
    db.add(job)
    db.commit()
    db.refresh(job)

    try:
        predictions = compute_hotspots(db, window_days, oracle)
        for prediction in predictions:
            db.add(
                HotspotAdvisory(
                    job_run_id=job.id,
                    latitude=prediction.latitude,
                    longitude=prediction.longitude,
                    risk_score=prediction.riskScore,
                    advisory=prediction.advisory,
                    window_days=window_days,
                )
            )
        job.status = "completed"
        job.items_processed = len(predictions)
        job.finished_at = datetime.now(UTC)
        db.commit()
        logger.info("Hotspot scan completed: job_run_id=%s advisories=%d", job.id, len(predictions))
        return {
            "status": "completed",
            "job_run_id": job.id,
            "advisories_created": len(predictions),
            "error": None,
        }
    except Exception as exc:
        logger.exception("Hotspot scan failed")
        db.rollback()
        job.status = "failed"
        job.error_message = str(exc)
        job.finished_at = datetime.now(UTC)
        db.commit()
        return {
            "status": "failed",
            "job_run_id": job.id,
            "advisories_created": 0,
            "error": str(exc),
        }


def latest_advisories(db: Session, limit: int = 50) -> list[HotspotAdvisory]:
    return (
        db.query(HotspotAdvisory)
        .order_by(HotspotAdvisory.created_at.desc(), HotspotAdvisory.id.desc())
        .limit(limit)
        .all()
    )
