"""Audit sink: immutable records for forensics completions and admin overrides."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from lumora.models import AuditLog

logger = logging.getLogger(__name__)

ACTION_FORENSICS_COMPLETED = "FORENSICS_COMPLETED"
ACTION_FORENSICS_JOB_FAILED = "FORENSICS_JOB_FAILED"
ACTION_ADMIN_TRUST_OVERRIDE = "ADMIN_TRUST_OVERRIDE"
ACTION_BATCH_RECALLED = "BATCH_RECALLED"

SYSTEM_ACTOR_ID = "forensics-worker"


def record_audit(
    db: Session,
    actor_id: str | int,
    actor_role: str,
    action: str,
    meta: dict[str, Any] | None = None,
) -> AuditLog:
    """Add one audit record to the session.

    The caller owns the transaction so the record commits atomically with the
    change it describes.
    """
    entry = AuditLog(
        actor_id=str(actor_id),
        actor_role=actor_role,
        action=action,
        meta=meta or {},
    )
    db.add(entry)
    logger.info("Audit: action=%s actor_role=%s", action, actor_role)
    return entry


def list_audit_logs(
    db: Session,
    action: str | None = None,
    actor_id: str | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    """Return audit records, newest first, optionally filtered by action or actor."""
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)
    return query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
