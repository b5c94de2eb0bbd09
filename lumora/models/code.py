"""Code model: single-use verification token printed on one product unit."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lumora.db.session import Base


class Code(Base):
    """Issued code. code_value is globally unique; is_used never reverts to False."""

    __tablename__ = "codes"
    __table_args__ = (Index("ix_codes_manufacturer_created", "manufacturer_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code_value: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    batch_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("batches.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    # Denormalised from the batch so the quota count is a single-table query
    manufacturer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("manufacturers.id", ondelete="RESTRICT"), nullable=False
    )
    is_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    first_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    batch: Mapped["Batch"] = relationship("Batch", back_populates="codes")
