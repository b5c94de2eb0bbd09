"""Certificate forensics: asynchronous forgery scoring of manufacturer onboarding documents."""

from lumora.forensics.pipeline import (
    execute_job,
    override_trust_status,
    process,
    request_reanalysis,
    submit,
)
from lumora.forensics.scoring import ForensicsResult, classify, score_certificate

__all__ = [
    "ForensicsResult",
    "classify",
    "execute_job",
    "override_trust_status",
    "process",
    "request_reanalysis",
    "score_certificate",
    "submit",
]
