"""Verification state machine: classify one scan and record exactly one log row.

Evaluation order (first match wins):

1. Code not found -> INVALID (UNREGISTERED_PRODUCT when the scan names a real
   manufacturer through ``manufacturer_hint_id``).
2. Batch recalled -> recall flag on top of the classification below.
3. Code unused -> atomic ``is_used: false -> true``; GENUINE. Losing a
   concurrent race falls through to CODE_ALREADY_USED.
4. Code used -> CODE_ALREADY_USED with the prior scan count.
5. Manufacturer ai_status FAKE -> SUSPICIOUS_PATTERN regardless of the above.

The log row and the ``is_used`` flip commit in one transaction, so a scan is
recorded once and only once per call.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from lumora.config import get_settings
from lumora.errors import StorageError
from lumora.models import Batch, Code, Manufacturer, VerificationLog
from lumora.models.enums import TrustDecision, TrustStatus, VerificationState
from lumora.services.quota import business_date

logger = logging.getLogger(__name__)

_CODE_RE = re.compile(r"^[A-Z0-9][A-Z0-9-]{0,63}$")
_MAX_LOGGED_LENGTH = 64

# Outcomes where a coarse location is captured even without consent
_FRAUD_CAPTURE_STATES = frozenset(
    {VerificationState.SUSPICIOUS_PATTERN, VerificationState.CODE_ALREADY_USED}
)


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class BatchInfo:
    batch_id: int
    batch_number: str
    product_name: str | None
    manufacturer_name: str | None
    expiration_date: date
    expired: bool


@dataclass(frozen=True)
class VerificationOutcome:
    state: VerificationState
    base_state: VerificationState
    code_value: str
    recall_flag: bool
    prior_scan_count: int
    trust_decision: TrustDecision
    verified_at: datetime
    batch_info: BatchInfo | None = None
    log_id: int | None = None


def normalize_code(raw: str | None) -> str | None:
    """Trim and upper-case a scanned code; None when it cannot be a code at all."""
    if not isinstance(raw, str):
        return None
    value = raw.strip().upper()
    if not _CODE_RE.match(value):
        return None
    return value


def normalize_location(geo: GeoPoint | None) -> GeoPoint | None:
    """Drop coordinates outside valid latitude/longitude ranges."""
    if geo is None:
        return None
    try:
        lat = float(geo.latitude)
        lng = float(geo.longitude)
    except (TypeError, ValueError):
        return None
    if -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0:
        return GeoPoint(lat, lng)
    return None


def resolve_location(
    state: VerificationState,
    geo: GeoPoint | None,
    consent_geo: bool,
) -> tuple[float | None, float | None, str | None]:
    """Decide which coordinates, if any, go on the log row.

    Precise only with consent. Fraud outcomes without consent get a
    best-effort coarse capture that can never fail the verification.
    """
    point = normalize_location(geo)
    if point is None:
        return None, None, None
    if consent_geo:
        return point.latitude, point.longitude, "precise"
    if state not in _FRAUD_CAPTURE_STATES:
        return None, None, None
    try:
        precision = get_settings().coarse_geo_precision
        return round(point.latitude, precision), round(point.longitude, precision), "coarse"
    except Exception:
        logger.warning("Coarse location capture unavailable", exc_info=True)
        return None, None, None


def trust_decision(
    state: VerificationState,
    expired: bool = False,
    recalled: bool = False,
) -> TrustDecision:
    """Consumer advice for an outcome. Explicit fraud signals take priority."""
    if state == VerificationState.SUSPICIOUS_PATTERN:
        return TrustDecision.REPORT_TO_REGULATOR
    if state in (VerificationState.CODE_ALREADY_USED, VerificationState.INVALID):
        return TrustDecision.DO_NOT_USE
    if state == VerificationState.UNREGISTERED_PRODUCT:
        return TrustDecision.VERIFY_WITH_PHARMACIST
    if expired or recalled:
        return TrustDecision.DO_NOT_USE
    return TrustDecision.SAFE_TO_USE


def mark_code_used(db: Session, code_id: int, now: datetime) -> bool:
    """Conditionally flip ``is_used`` false -> true. Return True only for the winning caller."""
    result = db.execute(
        update(Code)
        .where(Code.id == code_id, Code.is_used.is_(False))
        .values(is_used=True, first_used_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def count_prior_scans(db: Session, code_value: str) -> int:
    return (
        db.scalar(
            select(func.count(VerificationLog.id)).where(VerificationLog.code_value == code_value)
        )
        or 0
    )


def get_scan_history(db: Session, code_value: str) -> list[VerificationLog]:
    """All log rows for a code, oldest first."""
    normalized = normalize_code(code_value) or (code_value or "").strip().upper()
    return (
        db.query(VerificationLog)
        .filter(VerificationLog.code_value == normalized)
        .order_by(VerificationLog.created_at, VerificationLog.id)
        .all()
    )


def _load_code(db: Session, code_value: str) -> Code | None:
    return db.scalar(
        select(Code)
        .where(Code.code_value == code_value)
        .options(
            joinedload(Code.batch).joinedload(Batch.manufacturer),
            joinedload(Code.batch).joinedload(Batch.product),
        )
    )


def _batch_info(batch: Batch, today: date) -> BatchInfo:
    return BatchInfo(
        batch_id=batch.id,
        batch_number=batch.batch_number,
        product_name=batch.product.name if batch.product else None,
        manufacturer_name=batch.manufacturer.name if batch.manufacturer else None,
        expiration_date=batch.expiration_date,
        expired=batch.expiration_date < today,
    )


def verify(
    db: Session,
    code_value: str | None,
    manufacturer_hint_id: int | None = None,
    geo: GeoPoint | None = None,
    consent_geo: bool = False,
    now: datetime | None = None,
) -> VerificationOutcome:
    """Classify a scan attempt and append its verification log.

    Never raises for bad input: malformed or unknown codes resolve to INVALID.

    Raises:
        StorageError: The store is unreachable or the commit failed. In that
            case neither the log row nor the ``is_used`` flip is persisted.
    """
    now = now or datetime.now(UTC)
    normalized = normalize_code(code_value)
    raw_text = code_value if isinstance(code_value, str) else ""
    logged_value = normalized or raw_text.strip().upper()[:_MAX_LOGGED_LENGTH]

    batch_info: BatchInfo | None = None
    recall_flag = False
    manufacturer_id: int | None = None
    batch_id: int | None = None

    try:
        code = _load_code(db, normalized) if normalized else None
        prior = count_prior_scans(db, logged_value)

        if code is None:
            base_state = VerificationState.INVALID
            if normalized and manufacturer_hint_id is not None:
                if db.get(Manufacturer, manufacturer_hint_id) is not None:
                    base_state = VerificationState.UNREGISTERED_PRODUCT
                    manufacturer_id = manufacturer_hint_id
            state = base_state
        else:
            batch = code.batch
            manufacturer_id = batch.manufacturer_id
            batch_id = batch.id
            recall_flag = bool(batch.is_recalled)
            batch_info = _batch_info(batch, business_date(now))

            if not code.is_used and mark_code_used(db, code.id, now):
                base_state = VerificationState.GENUINE
            else:
                base_state = VerificationState.CODE_ALREADY_USED
            state = base_state

            manufacturer = batch.manufacturer
            if manufacturer is not None and manufacturer.ai_status == TrustStatus.FAKE.value:
                state = VerificationState.SUSPICIOUS_PATTERN

        latitude, longitude, accuracy = resolve_location(state, geo, consent_geo)
        log = VerificationLog(
            code_value=logged_value,
            verification_state=state.value,
            manufacturer_id=manufacturer_id,
            batch_id=batch_id,
            latitude=latitude,
            longitude=longitude,
            location_accuracy=accuracy,
            created_at=now,
        )
        db.add(log)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Verification failed to persist: code=%s", logged_value)
        raise StorageError("verification store unavailable") from exc

    logger.info(
        "Verification: code=%s state=%s base_state=%s prior_scans=%d recall=%s",
        logged_value,
        state.value,
        base_state.value,
        prior,
        recall_flag,
    )
    return VerificationOutcome(
        state=state,
        base_state=base_state,
        code_value=logged_value,
        recall_flag=recall_flag,
        prior_scan_count=prior,
        trust_decision=trust_decision(
            state,
            expired=batch_info.expired if batch_info else False,
            recalled=recall_flag,
        ),
        verified_at=now,
        batch_info=batch_info,
        log_id=log.id,
    )
