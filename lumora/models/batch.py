"""Batch model: one production run of a product."""

from __future__ import annotations

from datetime import UTC, date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lumora.db.session import Base


class Batch(Base):
    """Production run. A recalled batch's codes still verify but carry a recall flag."""

    __tablename__ = "batches"
    __table_args__ = (
        UniqueConstraint("manufacturer_id", "batch_number", name="uq_batches_manufacturer_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    batch_number: Mapped[str] = mapped_column(String(64), nullable=False)
    manufacturer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("manufacturers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    manufacturing_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiration_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_recalled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    manufacturer: Mapped["Manufacturer"] = relationship("Manufacturer", back_populates="batches")
    product: Mapped["Product"] = relationship("Product")
    codes: Mapped[list["Code"]] = relationship("Code", back_populates="batch")
