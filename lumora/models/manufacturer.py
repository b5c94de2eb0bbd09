"""Manufacturer model."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lumora.db.session import Base


class Manufacturer(Base):
    """Registered manufacturer. ai_score/ai_status are written by the forensics pipeline."""

    __tablename__ = "manufacturers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plan: Mapped[str] = mapped_column(String(16), default="BASIC", nullable=False)
    registry_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    certificate_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    ai_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    ai_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    products: Mapped[list["Product"]] = relationship(
        "Product", back_populates="manufacturer", cascade="all, delete-orphan"
    )
    batches: Mapped[list["Batch"]] = relationship("Batch", back_populates="manufacturer")
