"""Error taxonomy for the verification engine.

Classification outcomes (INVALID, CODE_ALREADY_USED, SUSPICIOUS_PATTERN) are
results, never exceptions. Only infrastructure failures and rejected
requests are raised.
"""

from __future__ import annotations

from typing import Any


class LumoraError(Exception):
    """Base class for engine errors."""


class NotFoundError(LumoraError):
    """Unknown manufacturer, batch, product or job.

    The verify path never raises this: an unknown code is classified INVALID.
    """

    def __init__(self, entity: str, identifier: Any) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class QuotaExceededError(LumoraError):
    """Issuance blocked by the manufacturer's daily quota."""

    def __init__(self, used: int, limit: int, requested: int) -> None:
        self.used = used
        self.limit = limit
        self.requested = requested
        super().__init__(
            f"Daily code quota exceeded: used={used} limit={limit} requested={requested}"
        )


class GenerationExhaustedError(LumoraError):
    """Code generation ran out of attempts; carries the codes actually persisted."""

    def __init__(self, issued: list, requested: int) -> None:
        self.issued = issued
        self.requested = requested
        super().__init__(
            f"Code generation exhausted: issued {len(issued)} of {requested}"
        )

    @property
    def shortfall(self) -> int:
        return self.requested - len(self.issued)


class StorageError(LumoraError):
    """Persistent store unavailable or a write failed. Retryable by the caller."""


class OracleDegradedError(LumoraError):
    """An external oracle failed. Always converted to a neutral reading internally."""


class JobProcessingError(LumoraError):
    """Terminal failure of one forensics job attempt; handed to the queue retry policy."""

    def __init__(self, job_id: int, message: str) -> None:
        self.job_id = job_id
        super().__init__(f"Forensics job {job_id} failed: {message}")


class ForbiddenError(LumoraError):
    """Actor may not act on this resource (e.g. a manufacturer touching another's data)."""
