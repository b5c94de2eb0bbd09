"""Enumerations shared by models, services and schemas.

Values are stored as plain strings in the database.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, generic JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class ManufacturerPlan(str, Enum):
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"


class TrustStatus(str, Enum):
    """Manufacturer trust state derived from certificate forensics."""

    CLEAN = "CLEAN"
    SUSPICIOUS = "SUSPICIOUS"
    FAKE = "FAKE"


class VerificationState(str, Enum):
    GENUINE = "GENUINE"
    CODE_ALREADY_USED = "CODE_ALREADY_USED"
    UNREGISTERED_PRODUCT = "UNREGISTERED_PRODUCT"
    SUSPICIOUS_PATTERN = "SUSPICIOUS_PATTERN"
    INVALID = "INVALID"


# States that feed the hotspot aggregator
FRAUD_SIGNAL_STATES: frozenset[str] = frozenset(
    {
        VerificationState.UNREGISTERED_PRODUCT.value,
        VerificationState.SUSPICIOUS_PATTERN.value,
        VerificationState.CODE_ALREADY_USED.value,
    }
)


class TrustDecision(str, Enum):
    """Consumer-facing advice attached to a verification outcome."""

    SAFE_TO_USE = "SAFE_TO_USE"
    VERIFY_WITH_PHARMACIST = "VERIFY_WITH_PHARMACIST"
    DO_NOT_USE = "DO_NOT_USE"
    REPORT_TO_REGULATOR = "REPORT_TO_REGULATOR"


class ForensicsJobStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ActorRole(str, Enum):
    MANUFACTURER = "manufacturer"
    ADMIN = "admin"
    SYSTEM = "system"
