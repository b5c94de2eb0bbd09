"""Shared FastAPI dependencies for API routes.

Identities arrive already authenticated from the upstream gateway as
``X-Actor-Id`` / ``X-Actor-Role`` headers. They are only trusted when the
request also carries the shared ``X-Internal-Token``.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, HTTPException, status

from lumora.config import get_settings
from lumora.db.session import get_db  # re-export
from lumora.errors import (
    ForbiddenError,
    LumoraError,
    NotFoundError,
    QuotaExceededError,
    StorageError,
)
from lumora.forensics.oracles import TamperDetector, TextExtractor
from lumora.models.enums import ActorRole
from lumora.services.risk_oracle import RiskOracle

logger = logging.getLogger(__name__)

__all__ = [
    "Actor",
    "get_actor",
    "get_db",
    "get_forensic_oracles",
    "get_oracle",
    "http_error",
    "require_internal_token",
    "require_manufacturer_access",
    "require_role",
]


@dataclass(frozen=True)
class Actor:
    id: str
    role: ActorRole


def require_internal_token(x_internal_token: str = Header(...)) -> None:
    """Validate the shared token with a constant-time comparison. 403 on mismatch."""
    expected = get_settings().internal_job_token
    if not expected or not secrets.compare_digest(x_internal_token, expected):
        logger.warning("Internal token check failed: invalid or missing token")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid internal token")


def get_actor(
    _token: None = Depends(require_internal_token),
    x_actor_id: str = Header(..., min_length=1, max_length=64),
    x_actor_role: str = Header(...),
) -> Actor:
    """Gateway-forwarded identity."""
    try:
        role = ActorRole(x_actor_role.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown actor role: {x_actor_role}"
        ) from None
    return Actor(id=x_actor_id.strip(), role=role)


def require_role(*roles: ActorRole) -> Callable[..., Actor]:
    """Dependency factory: the actor must hold one of *roles*."""

    def _dependency(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden for this role")
        return actor

    return _dependency


def require_manufacturer_access(
    manufacturer_id: int,
    actor: Actor = Depends(get_actor),
) -> Actor:
    """A manufacturer may only act on itself; admins may act on anyone."""
    if actor.role == ActorRole.ADMIN:
        return actor
    if actor.role == ActorRole.MANUFACTURER and actor.id == str(manufacturer_id):
        return actor
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden for this manufacturer")


def get_oracle() -> RiskOracle:
    """Risk oracle for hotspot endpoints. 503 when no LLM is configured."""
    from lumora.services.risk_oracle import get_risk_oracle

    try:
        return get_risk_oracle()
    except ValueError as exc:
        logger.warning("Risk oracle not configured: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Risk oracle not configured"
        ) from None


def get_forensic_oracles() -> tuple[TamperDetector, TextExtractor]:
    from lumora.forensics.worker import default_oracles

    return default_oracles()


def http_error(exc: LumoraError) -> HTTPException:
    """Map an engine error to its HTTP response."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, QuotaExceededError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": "Daily code quota exceeded",
                "used": exc.used,
                "limit": exc.limit,
                "requested": exc.requested,
            },
        )
    if isinstance(exc, ForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, StorageError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage temporarily unavailable"
        )
    logger.error("Unmapped engine error: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")
