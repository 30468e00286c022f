"""Recorded agent interactions carrying token counts."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field

from usage_limits.core.time import utcnow
from usage_limits.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Interaction(QueryModel, table=True):
    """One unit of agent work; token counts may be absent for tool-only turns."""

    __tablename__ = "interactions"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    agent_id: UUID = Field(foreign_key="agents.id", index=True)
    model: str | None = Field(default=None, index=True)
    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime, index=True)
