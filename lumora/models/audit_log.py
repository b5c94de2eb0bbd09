"""AuditLog model: immutable record of forensics completions and admin overrides."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from lumora.db.session import Base
from lumora.models.enums import JSONType
from lumora.models.verification_log import ImmutableRecordError


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    meta: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise ImmutableRecordError("audit_logs rows are append-only")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target) -> None:
    raise ImmutableRecordError("audit_logs rows cannot be deleted")
