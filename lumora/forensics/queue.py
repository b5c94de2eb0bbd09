"""Durable table-backed queue for forensics jobs.

States: queued -> in_progress -> completed | failed. A failed attempt goes back
to queued with exponential backoff until ``max_attempts`` is spent. A job left
in_progress longer than the visibility timeout (crashed worker) is claimable
again while it has attempts left; once they are spent it is failed instead.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from lumora.config import ForensicsPolicy, get_forensics_policy
from lumora.models import ForensicsJob
from lumora.models.enums import ActorRole, ForensicsJobStatus
from lumora.services.audit import ACTION_FORENSICS_JOB_FAILED, SYSTEM_ACTOR_ID, record_audit

logger = logging.getLogger(__name__)

STALLED_ERROR = "worker stalled past visibility timeout"


def _stalled(stale_before: datetime):
    return and_(
        ForensicsJob.status == ForensicsJobStatus.IN_PROGRESS.value,
        ForensicsJob.locked_at < stale_before,
    )


def _fail_terminally(db: Session, job: ForensicsJob, now: datetime) -> None:
    """Mark *job* failed and add the audit record. The caller commits."""
    job.status = ForensicsJobStatus.FAILED.value
    job.finished_at = now
    job.locked_at = None
    record_audit(
        db,
        SYSTEM_ACTOR_ID,
        ActorRole.SYSTEM.value,
        ACTION_FORENSICS_JOB_FAILED,
        {
            "job_id": job.id,
            "manufacturer_id": job.manufacturer_id,
            "attempts": job.attempts,
            "error": job.error_message,
        },
    )
    logger.error("Forensics job failed permanently: job_id=%s attempts=%d", job.id, job.attempts)


def fail_exhausted_stalled(
    db: Session,
    now: datetime | None = None,
    policy: ForensicsPolicy | None = None,
) -> int:
    """Fail stalled jobs that have no attempts left. Returns how many were failed."""
    policy = policy or get_forensics_policy()
    now = now or datetime.now(UTC)
    stale_before = now - timedelta(seconds=policy.visibility_timeout)

    stmt = (
        select(ForensicsJob)
        .where(_stalled(stale_before), ForensicsJob.attempts >= ForensicsJob.max_attempts)
        .with_for_update(skip_locked=True)
    )
    jobs = list(db.scalars(stmt))
    if not jobs:
        return 0
    for job in jobs:
        job.error_message = STALLED_ERROR
        _fail_terminally(db, job, now)
    db.commit()
    return len(jobs)


def claim_next(
    db: Session,
    now: datetime | None = None,
    policy: ForensicsPolicy | None = None,
) -> ForensicsJob | None:
    """Lock the oldest due job, mark it in_progress and commit. None when idle."""
    policy = policy or get_forensics_policy()
    now = now or datetime.now(UTC)
    stale_before = now - timedelta(seconds=policy.visibility_timeout)

    fail_exhausted_stalled(db, now=now, policy=policy)

    stmt = (
        select(ForensicsJob)
        .where(
            or_(
                and_(
                    ForensicsJob.status == ForensicsJobStatus.QUEUED.value,
                    ForensicsJob.next_attempt_at <= now,
                ),
                and_(
                    _stalled(stale_before),
                    ForensicsJob.attempts < ForensicsJob.max_attempts,
                ),
            )
        )
        .order_by(ForensicsJob.next_attempt_at, ForensicsJob.id)
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    job = db.scalars(stmt).first()
    if job is None:
        db.rollback()
        return None

    if job.status == ForensicsJobStatus.IN_PROGRESS.value:
        logger.warning("Reclaiming stalled forensics job: job_id=%s attempts=%d", job.id, job.attempts)
    job.status = ForensicsJobStatus.IN_PROGRESS.value
    job.attempts += 1
    job.locked_at = now
    db.commit()
    db.refresh(job)
    logger.info("Claimed forensics job: job_id=%s attempt=%d", job.id, job.attempts)
    return job


def backoff_delay(attempts: int, policy: ForensicsPolicy) -> timedelta:
    """Delay before the next attempt: base * 2^(attempts - 1)."""
    return timedelta(seconds=policy.backoff_seconds * (2 ** max(0, attempts - 1)))


def report_failure(
    db: Session,
    job: ForensicsJob,
    error: str,
    now: datetime | None = None,
    policy: ForensicsPolicy | None = None,
) -> ForensicsJob:
    """Requeue with backoff, or fail terminally once attempts are exhausted."""
    policy = policy or get_forensics_policy()
    now = now or datetime.now(UTC)

    if job.status in (ForensicsJobStatus.COMPLETED.value, ForensicsJobStatus.FAILED.value):
        return job

    job.error_message = error[:2000]
    job.locked_at = None
    if job.attempts >= job.max_attempts:
        _fail_terminally(db, job, now)
    else:
        job.status = ForensicsJobStatus.QUEUED.value
        job.next_attempt_at = now + backoff_delay(job.attempts, policy)
        logger.warning(
            "Forensics job requeued: job_id=%s attempts=%d next_attempt_at=%s",
            job.id,
            job.attempts,
            job.next_attempt_at.isoformat(),
        )
    db.commit()
    return job
