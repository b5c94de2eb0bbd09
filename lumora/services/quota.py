"""Quota ledger: daily code-creation allowance per manufacturer plan.

`used` is always a live count over the codes table for the current calendar
day, so the ledger can never drift from the source of truth. Two concurrent
issuance requests near the boundary can both pass the check and overshoot the
cap slightly; that slack is accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lumora.config import QuotaPolicy, get_quota_policy
from lumora.errors import NotFoundError, StorageError
from lumora.models import Code, Manufacturer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    used: int
    limit: int
    remaining: int
    plan: str

    @property
    def percentage(self) -> float:
        if self.limit <= 0:
            return 100.0
        return round(100.0 * self.used / self.limit, 1)

    @property
    def quota_exceeded(self) -> bool:
        return self.used >= self.limit


def day_window(now: datetime, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """Return the [start, end) bounds of *now*'s calendar day in *tz_name*, as UTC."""
    tz = ZoneInfo(tz_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    local = now.astimezone(tz)
    start_local = datetime.combine(local.date(), time.min, tzinfo=tz)
    end_local = start_local + timedelta(days=1)
    return start_local.astimezone(UTC), end_local.astimezone(UTC)


def business_date(now: datetime | None = None, tz_name: str | None = None) -> date:
    """Calendar date of *now* in the configured timezone. Shared by quota, batch expiry and verification."""
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(ZoneInfo(tz_name or get_quota_policy().timezone)).date()


def count_codes_created(
    db: Session,
    manufacturer_id: int,
    start: datetime,
    end: datetime,
) -> int:
    """Count codes created by a manufacturer in [start, end)."""
    return (
        db.scalar(
            select(func.count(Code.id)).where(
                Code.manufacturer_id == manufacturer_id,
                Code.created_at >= start,
                Code.created_at < end,
            )
        )
        or 0
    )


def can_create(
    db: Session,
    manufacturer_id: int,
    policy: QuotaPolicy | None = None,
    now: datetime | None = None,
) -> QuotaStatus:
    """Check the manufacturer's remaining allowance for today.

    Raises:
        NotFoundError: Unknown manufacturer.
        StorageError: The count query failed.
    """
    policy = policy or get_quota_policy()
    now = now or datetime.now(UTC)

    try:
        manufacturer = db.get(Manufacturer, manufacturer_id)
        if manufacturer is None:
            raise NotFoundError("Manufacturer", manufacturer_id)
        start, end = day_window(now, policy.timezone)
        used = count_codes_created(db, manufacturer_id, start, end)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Quota check failed for manufacturer %s", manufacturer_id)
        raise StorageError("quota count unavailable") from exc

    limit = policy.limit_for(manufacturer.plan)
    status = QuotaStatus(
        allowed=used < limit,
        used=used,
        limit=limit,
        remaining=max(0, limit - used),
        plan=manufacturer.plan,
    )
    logger.debug(
        "Quota: manufacturer_id=%s plan=%s used=%d limit=%d",
        manufacturer_id,
        status.plan,
        used,
        limit,
    )
    return status
