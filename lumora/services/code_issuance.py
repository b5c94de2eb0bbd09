"""Code issuance: cryptographically random, globally unique codes per batch.

Candidates are inserted in bulk with ON CONFLICT DO NOTHING, then re-queried
to learn which ones were actually persisted for this batch. Only the
shortfall is regenerated, bounded to 3 x quantity candidates overall.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Iterable

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lumora.config import QuotaPolicy, get_settings
from lumora.errors import GenerationExhaustedError, NotFoundError, QuotaExceededError, StorageError
from lumora.models import Batch, Code, Manufacturer, Product
from lumora.models.enums import ActorRole
from lumora.services.audit import ACTION_BATCH_RECALLED, record_audit
from lumora.services.quota import business_date, can_create

logger = logging.getLogger(__name__)

# No I, O, 0 or 1: avoids misreads on printed labels
CHAR_POOL = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_BODY_LENGTH = 10
ATTEMPT_MULTIPLIER = 3

# Keeps IN (...) lists and multi-row VALUES below driver parameter limits
_CHUNK_SIZE = 500


@dataclass
class IssuanceResult:
    """Outcome of an issuance request: codes persisted and how many are missing."""

    requested: int
    codes: list[Code] = field(default_factory=list)

    @property
    def issued(self) -> int:
        return len(self.codes)

    @property
    def shortfall(self) -> int:
        return self.requested - self.issued


def generate_candidate(prefix: str | None = None) -> str:
    """Return one random code value, e.g. ``LUM-7KQ2M9XH4R``."""
    if prefix is None:
        prefix = get_settings().code_prefix
    return prefix + "".join(secrets.choice(CHAR_POOL) for _ in range(CODE_BODY_LENGTH))


def _chunks(values: list, size: int = _CHUNK_SIZE) -> Iterable[list]:
    for i in range(0, len(values), size):
        yield values[i : i + size]


def _existing_values(db: Session, values: list[str]) -> set[str]:
    found: set[str] = set()
    for chunk in _chunks(values):
        found.update(db.scalars(select(Code.code_value).where(Code.code_value.in_(chunk))))
    return found


def _persisted_for_batch(db: Session, batch_id: int, values: list[str]) -> list[Code]:
    rows: list[Code] = []
    for chunk in _chunks(values):
        rows.extend(
            db.scalars(
                select(Code).where(Code.batch_id == batch_id, Code.code_value.in_(chunk))
            )
        )
    return rows


def bulk_insert_skip_duplicates(db: Session, rows: list[dict]) -> None:
    """Insert code rows, silently skipping any that violate the unique constraint."""
    dialect = db.get_bind().dialect.name
    for chunk in _chunks(rows):
        if dialect == "postgresql":
            db.execute(pg_insert(Code).values(chunk).on_conflict_do_nothing(index_elements=["code_value"]))
        elif dialect == "sqlite":
            db.execute(sqlite_insert(Code).values(chunk).on_conflict_do_nothing(index_elements=["code_value"]))
        else:
            for row in chunk:
                try:
                    with db.begin_nested():
                        db.execute(insert(Code).values(**row))
                except IntegrityError:
                    continue


def issue_codes(db: Session, batch_id: int, quantity: int) -> list[Code]:
    """Generate and persist exactly *quantity* unique codes for a batch.

    The caller must already have passed the quota check.

    Raises:
        ValueError: quantity < 1.
        NotFoundError: Unknown batch.
        GenerationExhaustedError: Attempt budget spent; ``.issued`` holds the
            codes that were persisted (and committed).
        StorageError: The store failed; nothing from the failing round is kept.
    """
    if quantity < 1:
        raise ValueError("quantity must be positive")

    batch = db.get(Batch, batch_id)
    if batch is None:
        raise NotFoundError("Batch", batch_id)

    prefix = get_settings().code_prefix
    budget = ATTEMPT_MULTIPLIER * quantity
    generated = 0
    issued: dict[str, Code] = {}

    try:
        while len(issued) < quantity and generated < budget:
            wanted = min(quantity - len(issued), budget - generated)
            candidates = {generate_candidate(prefix) for _ in range(wanted)}
            generated += wanted

            fresh = sorted(candidates - _existing_values(db, list(candidates)))
            if not fresh:
                continue

            now = datetime.now(UTC)
            bulk_insert_skip_duplicates(
                db,
                [
                    {
                        "code_value": value,
                        "batch_id": batch.id,
                        "manufacturer_id": batch.manufacturer_id,
                        "is_used": False,
                        "created_at": now,
                    }
                    for value in fresh
                ],
            )
            for code in _persisted_for_batch(db, batch.id, fresh):
                issued.setdefault(code.code_value, code)

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Code issuance failed for batch %s", batch_id)
        raise StorageError("code store unavailable") from exc

    codes = list(issued.values())
    logger.info(
        "Issued codes: batch_id=%s requested=%d issued=%d candidates=%d",
        batch_id,
        quantity,
        len(codes),
        generated,
    )
    if len(codes) < quantity:
        raise GenerationExhaustedError(codes, quantity)
    return codes


def issue_codes_for_manufacturer(
    db: Session,
    manufacturer_id: int,
    batch_id: int,
    quantity: int,
    policy: QuotaPolicy | None = None,
) -> IssuanceResult:
    """Quota-checked issuance for a manufacturer's own batch.

    The quota is checked before any generation. A request larger than the
    remaining allowance is rejected outright rather than partially served.
    """
    max_quantity = get_settings().max_codes_per_request
    if quantity < 1 or quantity > max_quantity:
        raise ValueError(f"quantity must be between 1 and {max_quantity}")

    batch = db.get(Batch, batch_id)
    if batch is None or batch.manufacturer_id != manufacturer_id:
        raise NotFoundError("Batch", batch_id)

    quota = can_create(db, manufacturer_id, policy)
    if not quota.allowed or quantity > quota.remaining:
        logger.warning(
            "Quota rejected: manufacturer_id=%s used=%d limit=%d requested=%d",
            manufacturer_id,
            quota.used,
            quota.limit,
            quantity,
        )
        raise QuotaExceededError(quota.used, quota.limit, quantity)

    try:
        codes = issue_codes(db, batch_id, quantity)
    except GenerationExhaustedError as exc:
        logger.error(
            "Partial issuance: batch_id=%s issued=%d shortfall=%d",
            batch_id,
            len(exc.issued),
            exc.shortfall,
        )
        return IssuanceResult(requested=quantity, codes=list(exc.issued))
    return IssuanceResult(requested=quantity, codes=codes)


# ── Batch lifecycle ──────────────────────────────────────────────────


def create_batch(
    db: Session,
    manufacturer_id: int,
    product_id: int,
    batch_number: str,
    expiration_date: date,
    quantity: int = 0,
    manufacturing_date: date | None = None,
    now: datetime | None = None,
) -> Batch:
    """Register a production run. The expiration date must lie in the future."""
    if expiration_date <= business_date(now):
        raise ValueError("expiration_date must be in the future")

    if db.get(Manufacturer, manufacturer_id) is None:
        raise NotFoundError("Manufacturer", manufacturer_id)
    product = db.get(Product, product_id)
    if product is None or product.manufacturer_id != manufacturer_id:
        raise NotFoundError("Product", product_id)

    batch = Batch(
        manufacturer_id=manufacturer_id,
        product_id=product_id,
        batch_number=batch_number,
        quantity=quantity,
        expiration_date=expiration_date,
        manufacturing_date=manufacturing_date,
    )
    db.add(batch)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("batch store unavailable") from exc
    db.refresh(batch)
    logger.info("Batch created: batch_id=%s manufacturer_id=%s", batch.id, manufacturer_id)
    return batch


def recall_batch(
    db: Session,
    batch_id: int,
    actor_id: str | int,
    actor_role: str = ActorRole.ADMIN.value,
    reason: str | None = None,
) -> Batch:
    """Flag a batch as recalled. Its codes keep verifying, with a recall warning."""
    batch = db.get(Batch, batch_id)
    if batch is None:
        raise NotFoundError("Batch", batch_id)
    batch.is_recalled = True
    record_audit(
        db,
        actor_id,
        actor_role,
        ACTION_BATCH_RECALLED,
        {"batch_id": batch.id, "batch_number": batch.batch_number, "reason": reason},
    )
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError("batch store unavailable") from exc
    return batch
