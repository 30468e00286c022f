"""Usage limit records for organizations, teams, and agents."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field

from usage_limits.core.time import utcnow
from usage_limits.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)

LIMIT_ENTITY_TYPES = ("organization", "team", "agent")
LIMIT_TYPES = ("token_cost", "mcp_server_calls", "tool_calls")


class Limit(QueryModel, table=True):
    """Quota record with accumulated usage counters.

    `entity_id` references an organization, team, or agent by id without a
    foreign key. For `mcp_server_calls` limits the call count is kept in
    `current_usage_tokens_in` and `current_usage_tokens_out` stays 0.
    """

    __tablename__ = "limits"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    entity_type: str = Field(index=True)
    entity_id: str = Field(index=True)
    limit_type: str = Field(index=True)
    limit_value: int = Field(ge=0)
    model: str | None = None
    mcp_server_name: str | None = None
    tool_name: str | None = None
    current_usage_tokens_in: int = Field(default=0)
    current_usage_tokens_out: int = Field(default=0)
    last_cleanup: datetime | None = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
