"""Deterministic certificate forgery scoring.

Pure functions over oracle readings: no I/O, no clock, no randomness.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lumora.config import ForensicsPolicy
from lumora.models.enums import TrustStatus

HIGH_TAMPER_WEIGHT = 0.5
MODERATE_TAMPER_WEIGHT = 0.2
MISSING_TEXT_WEIGHT = 0.4
MISSING_REGISTRY_WEIGHT = 0.4

REASON_HIGH_TAMPER = "high_tamper_confidence"
REASON_MODERATE_TAMPER = "moderate_tamper_confidence"
REASON_MISSING_TEXT = "insufficient_text"
REASON_MISSING_REGISTRY = "registry_number_absent"


@dataclass(frozen=True)
class ForensicsResult:
    score: float
    status: TrustStatus
    reasons: list[str] = field(default_factory=list)
    degraded: bool = False


def score_certificate(
    tamper_confidence: float,
    text: str | None,
    expected_registry_number: str | None,
    policy: ForensicsPolicy,
) -> tuple[float, list[str]]:
    """Score a certificate in [0, 1] and name every rule that fired."""
    score = 0.0
    reasons: list[str] = []

    if tamper_confidence > policy.tamper_high:
        score += HIGH_TAMPER_WEIGHT
        reasons.append(REASON_HIGH_TAMPER)
    elif tamper_confidence > policy.tamper_moderate:
        score += MODERATE_TAMPER_WEIGHT
        reasons.append(REASON_MODERATE_TAMPER)

    stripped = (text or "").strip()
    if len(stripped) < policy.min_text_length:
        score += MISSING_TEXT_WEIGHT
        reasons.append(REASON_MISSING_TEXT)

    if expected_registry_number:
        needle = expected_registry_number.strip().upper()
        if needle and needle not in stripped.upper():
            score += MISSING_REGISTRY_WEIGHT
            reasons.append(REASON_MISSING_REGISTRY)

    return round(min(1.0, max(0.0, score)), 4), reasons


def classify(score: float, policy: ForensicsPolicy | None = None) -> TrustStatus:
    policy = policy or ForensicsPolicy()
    if score >= policy.fake_threshold:
        return TrustStatus.FAKE
    if score >= policy.suspicious_threshold:
        return TrustStatus.SUSPICIOUS
    return TrustStatus.CLEAN
