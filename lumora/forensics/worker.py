"""Forensics worker: claim queued jobs and run them to a terminal state."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Callable

from sqlalchemy.orm import Session

from lumora.config import ForensicsPolicy, get_forensics_policy, get_settings
from lumora.errors import JobProcessingError
from lumora.forensics.oracles import (
    ElaTamperDetector,
    TamperDetector,
    TesseractTextExtractor,
    TextExtractor,
)
from lumora.forensics.pipeline import execute_job
from lumora.forensics.queue import claim_next, report_failure
from lumora.models import JobRun

logger = logging.getLogger(__name__)

JOB_TYPE_FORENSICS_WORKER = "forensics_worker"


def default_oracles() -> tuple[TamperDetector, TextExtractor]:
    return ElaTamperDetector(), TesseractTextExtractor()


def run_once(
    db: Session,
    tamper_detector: TamperDetector,
    text_extractor: TextExtractor,
    policy: ForensicsPolicy | None = None,
) -> dict | None:
    """Claim and run one job. Returns None when nothing is due."""
    policy = policy or get_forensics_policy()
    job = claim_next(db, policy=policy)
    if job is None:
        return None

    try:
        result = execute_job(db, job, tamper_detector, text_extractor, policy)
    except JobProcessingError as exc:
        report_failure(db, job, str(exc), policy=policy)
        return {"job_id": job.id, "status": job.status, "error": str(exc)}

    return {
        "job_id": job.id,
        "status": job.status,
        "score": result.score if result else job.score,
        "ai_status": result.status.value if result else job.ai_status,
    }


def process_available(
    db: Session,
    tamper_detector: TamperDetector,
    text_extractor: TextExtractor,
    max_jobs: int = 25,
    policy: ForensicsPolicy | None = None,
) -> dict:
    """Drain due jobs (up to *max_jobs*) under one JobRun record.

    The JobRun is only created once a job has actually been claimed, so an
    idle poll leaves no trace.

    Returns:
        dict with status, job_run_id, jobs_processed, completed, failed_attempts.
    """
    job_run: JobRun | None = None
    outcomes: list[dict] = []

    while len(outcomes) < max_jobs:
        outcome = run_once(db, tamper_detector, text_extractor, policy)
        if outcome is None:
            break
        if job_run is None:
            job_run = JobRun(job_type=JOB_TYPE_FORENSICS_WORKER, status="running")
            db.add(job_run)
            db.commit()
        outcomes.append(outcome)

    completed = sum(1 for o in outcomes if o["status"] == "completed")
    if job_run is not None:
        job_run.status = "completed"
        job_run.items_processed = len(outcomes)
        job_run.finished_at = datetime.now(UTC)
        db.commit()
        logger.info(
            "Forensics batch: job_run_id=%s processed=%d completed=%d",
            job_run.id,
            len(outcomes),
            completed,
        )

    return {
        "status": "completed",
        "job_run_id": job_run.id if job_run else None,
        "jobs_processed": len(outcomes),
        "completed": completed,
        "failed_attempts": len(outcomes) - completed,
    }


def run_worker(
    session_factory: Callable[[], Session],
    tamper_detector: TamperDetector | None = None,
    text_extractor: TextExtractor | None = None,
    poll_interval: float | None = None,
    max_iterations: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll the queue until interrupted (or *max_iterations* polls). Returns jobs processed."""
    if tamper_detector is None or text_extractor is None:
        default_detector, default_extractor = default_oracles()
        tamper_detector = tamper_detector or default_detector
        text_extractor = text_extractor or default_extractor
    if poll_interval is None:
        poll_interval = get_settings().forensics_poll_interval

    total = 0
    iterations = 0
    logger.info("Forensics worker started: poll_interval=%.1fs", poll_interval)
    while max_iterations is None or iterations < max_iterations:
        iterations += 1
        db = session_factory()
        try:
            summary = process_available(db, tamper_detector, text_extractor)
        except Exception:
            logger.exception("Forensics worker iteration failed")
            db.rollback()
            summary = {"jobs_processed": 0}
        finally:
            db.close()
        total += summary["jobs_processed"]
        if summary["jobs_processed"] == 0:
            sleep(poll_interval)
    logger.info("Forensics worker stopped: jobs_processed=%d", total)
    return total
