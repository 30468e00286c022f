"""Schemas for organization-level limit cleanup settings."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from sqlmodel import SQLModel

_RUNTIME_TYPE_REFERENCES = (UUID,)

LimitCleanupInterval = Literal["1h", "12h", "24h", "1w", "1m"]


class LimitCleanupIntervalUpdate(SQLModel):
    limit_cleanup_interval: LimitCleanupInterval


class LimitCleanupIntervalRead(SQLModel):
    organization_id: UUID
    limit_cleanup_interval: str
