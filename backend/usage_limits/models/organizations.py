"""Organization records that own teams and carry the limit cleanup cadence."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field

from usage_limits.core.time import utcnow
from usage_limits.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Organization(QueryModel, table=True):
    """Top-level tenant; limit counters scoped to it reset on its own interval."""

    __tablename__ = "organizations"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    limit_cleanup_interval: str = Field(default="1h")
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
