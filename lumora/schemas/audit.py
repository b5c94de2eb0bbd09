"""Audit log schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditLogRead(BaseModel):
    id: int
    actor_id: str
    actor_role: str
    action: str
    meta: dict[str, Any] | None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogList(BaseModel):
    items: list[AuditLogRead]
