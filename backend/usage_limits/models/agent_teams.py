"""Agent-to-team membership association."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field

from usage_limits.core.time import utcnow
from usage_limits.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class AgentTeam(QueryModel, table=True):
    """One membership edge; an agent may belong to zero or more teams."""

    __tablename__ = "agent_teams"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (UniqueConstraint("agent_id", "team_id", name="uq_agent_teams_agent_team"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    agent_id: UUID = Field(foreign_key="agents.id", index=True)
    team_id: UUID = Field(foreign_key="teams.id", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
