"""VerificationLog model: append-only audit trail of scan attempts."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from lumora.db.session import Base


class VerificationLog(Base):
    """One row per verify call. Never updated or deleted.

    manufacturer_id is null for orphaned/unregistered codes. Coordinates are
    only present under consent, or coarse for fraud outcomes.
    """

    __tablename__ = "verification_logs"
    __table_args__ = (
        Index("ix_verification_logs_state_created", "verification_state", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code_value: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    verification_state: Mapped[str] = mapped_column(String(32), nullable=False)
    manufacturer_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("manufacturers.id", ondelete="SET NULL"), nullable=True
    )
    batch_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("batches.id", ondelete="SET NULL"), nullable=True
    )
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    location_accuracy: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )


class ImmutableRecordError(RuntimeError):
    """Raised when the ORM is asked to modify an append-only record."""


@event.listens_for(VerificationLog, "before_update")
def _reject_log_update(mapper, connection, target) -> None:
    raise ImmutableRecordError("verification_logs rows are append-only")


@event.listens_for(VerificationLog, "before_delete")
def _reject_log_delete(mapper, connection, target) -> None:
    raise ImmutableRecordError("verification_logs rows cannot be deleted")
