"""Forensics job pipeline: submit a certificate, score it, persist the trust status.

Submission is fire-and-forget. Scoring happens later in a worker
(`lumora.forensics.worker`) that claims jobs from the durable queue.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lumora.config import ForensicsPolicy, get_forensics_policy
from lumora.errors import ForbiddenError, JobProcessingError, NotFoundError, StorageError
from lumora.forensics.oracles import TamperDetector, TextExtractor, safe_detect_tamper, safe_extract_text
from lumora.forensics.scoring import ForensicsResult, classify, score_certificate
from lumora.models import ForensicsJob, Manufacturer
from lumora.models.enums import ActorRole, ForensicsJobStatus, TrustStatus
from lumora.services.audit import (
    ACTION_ADMIN_TRUST_OVERRIDE,
    ACTION_FORENSICS_COMPLETED,
    SYSTEM_ACTOR_ID,
    record_audit,
)

logger = logging.getLogger(__name__)


def submit(
    db: Session,
    manufacturer_id: int,
    certificate_path: str,
    expected_registry_number: str | None = None,
    policy: ForensicsPolicy | None = None,
) -> ForensicsJob:
    """Enqueue a certificate for analysis and return the queued job handle."""
    policy = policy or get_forensics_policy()
    manufacturer = db.get(Manufacturer, manufacturer_id)
    if manufacturer is None:
        raise NotFoundError("Manufacturer", manufacturer_id)

    manufacturer.certificate_path = certificate_path
    job = ForensicsJob(
        manufacturer_id=manufacturer_id,
        certificate_path=certificate_path,
        expected_registry_number=expected_registry_number,
        status=ForensicsJobStatus.QUEUED.value,
        max_attempts=policy.max_attempts,
        next_attempt_at=datetime.now(UTC),
    )
    db.add(job)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("forensics queue unavailable") from exc
    db.refresh(job)
    logger.info("Forensics job queued: job_id=%s manufacturer_id=%s", job.id, manufacturer_id)
    return job


def process(
    job: ForensicsJob,
    tamper_detector: TamperDetector,
    text_extractor: TextExtractor,
    policy: ForensicsPolicy | None = None,
) -> ForensicsResult:
    """Run both oracles on the job's certificate and score the readings.

    Oracle failures are folded into neutral readings, so this never raises
    on account of an oracle.
    """
    policy = policy or get_forensics_policy()
    tamper = safe_detect_tamper(tamper_detector, job.certificate_path)
    text = safe_extract_text(text_extractor, job.certificate_path)

    score, reasons = score_certificate(
        tamper.value.confidence,
        text.value.text,
        job.expected_registry_number,
        policy,
    )
    return ForensicsResult(
        score=score,
        status=classify(score, policy),
        reasons=reasons,
        degraded=tamper.degraded or text.degraded,
    )


def execute_job(
    db: Session,
    job: ForensicsJob,
    tamper_detector: TamperDetector,
    text_extractor: TextExtractor,
    policy: ForensicsPolicy | None = None,
) -> ForensicsResult | None:
    """Score a claimed job and write the manufacturer's trust status.

    The score write, job completion and audit record commit together.
    A job that is already completed is left alone and None is returned.

    Raises:
        JobProcessingError: Manufacturer vanished or the write failed.
    """
    if job.status == ForensicsJobStatus.COMPLETED.value:
        logger.info("Forensics job already completed: job_id=%s", job.id)
        return None

    result = process(job, tamper_detector, text_extractor, policy)
    now = datetime.now(UTC)
    try:
        manufacturer = db.get(Manufacturer, job.manufacturer_id)
        if manufacturer is None:
            raise JobProcessingError(job.id, f"manufacturer {job.manufacturer_id} not found")

        manufacturer.ai_score = result.score
        manufacturer.ai_status = result.status.value
        manufacturer.updated_at = now

        job.status = ForensicsJobStatus.COMPLETED.value
        job.score = result.score
        job.ai_status = result.status.value
        job.reasons = list(result.reasons)
        job.finished_at = now
        job.locked_at = None
        job.error_message = None

        record_audit(
            db,
            SYSTEM_ACTOR_ID,
            ActorRole.SYSTEM.value,
            ACTION_FORENSICS_COMPLETED,
            {
                "job_id": job.id,
                "manufacturer_id": job.manufacturer_id,
                "score": result.score,
                "status": result.status.value,
                "reasons": list(result.reasons),
                "degraded": result.degraded,
            },
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Forensics result write failed: job_id=%s", job.id)
        raise JobProcessingError(job.id, str(exc)) from exc

    logger.info(
        "Forensics completed: job_id=%s manufacturer_id=%s score=%.2f status=%s degraded=%s",
        job.id,
        job.manufacturer_id,
        result.score,
        result.status.value,
        result.degraded,
    )
    return result


def request_reanalysis(
    db: Session,
    manufacturer_id: int,
    actor_id: str | int,
    actor_role: str,
    policy: ForensicsPolicy | None = None,
) -> ForensicsJob:
    """Queue a fresh analysis of the manufacturer's certificate on file.

    A manufacturer may only ask for itself; an admin may ask for anyone.

    Raises:
        ForbiddenError: Manufacturer acting on another manufacturer.
        NotFoundError: Unknown manufacturer or no certificate on file.
    """
    if actor_role == ActorRole.MANUFACTURER.value and str(actor_id) != str(manufacturer_id):
        raise ForbiddenError("manufacturers may only request their own reanalysis")
    if actor_role not in (ActorRole.MANUFACTURER.value, ActorRole.ADMIN.value):
        raise ForbiddenError(f"role {actor_role!r} may not request reanalysis")

    manufacturer = db.get(Manufacturer, manufacturer_id)
    if manufacturer is None:
        raise NotFoundError("Manufacturer", manufacturer_id)
    if not manufacturer.certificate_path:
        raise NotFoundError("Certificate for manufacturer", manufacturer_id)

    logger.info(
        "Reanalysis requested: manufacturer_id=%s actor_role=%s", manufacturer_id, actor_role
    )
    return submit(
        db,
        manufacturer_id,
        manufacturer.certificate_path,
        expected_registry_number=manufacturer.registry_number,
        policy=policy,
    )


def override_trust_status(
    db: Session,
    manufacturer_id: int,
    status: TrustStatus | str,
    actor_id: str | int,
    reason: str | None = None,
) -> Manufacturer:
    """Admin override of a manufacturer's trust status, with an audit trail."""
    new_status = TrustStatus(status)
    manufacturer = db.get(Manufacturer, manufacturer_id)
    if manufacturer is None:
        raise NotFoundError("Manufacturer", manufacturer_id)

    previous = manufacturer.ai_status
    manufacturer.ai_status = new_status.value
    manufacturer.updated_at = datetime.now(UTC)
    record_audit(
        db,
        actor_id,
        ActorRole.ADMIN.value,
        ACTION_ADMIN_TRUST_OVERRIDE,
        {
            "manufacturer_id": manufacturer_id,
            "previous_status": previous,
            "new_status": new_status.value,
            "reason": reason,
        },
    )
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("manufacturer store unavailable") from exc
    db.refresh(manufacturer)
    logger.info(
        "Trust status overridden: manufacturer_id=%s %s -> %s",
        manufacturer_id,
        previous,
        new_status.value,
    )
    return manufacturer
