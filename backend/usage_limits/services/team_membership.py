"""Agent team membership and team organization lookups."""

from __future__ import annotations

from uuid import UUID

from sqlmodel import col, select

from usage_limits.models.agent_teams import AgentTeam
from usage_limits.models.teams import Team
from usage_limits.services.db_service import DBService


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


class TeamMembershipService(DBService):
    """Resolve the organization hierarchy above an agent."""

    async def team_ids_for_agent(self, agent_id: UUID | str) -> list[str]:
        """Return the agent's team ids in membership order."""
        statement = (
            select(AgentTeam.team_id)
            .where(col(AgentTeam.agent_id) == _as_uuid(agent_id))
            .order_by(col(AgentTeam.created_at).asc())
        )
        return [str(team_id) for team_id in (await self.session.exec(statement)).all()]

    async def organization_id_for_team(self, team_id: UUID | str) -> str | None:
        team = await Team.objects.by_id(_as_uuid(team_id)).first(self.session)
        if team is None:
            return None
        return str(team.organization_id)


__all__ = ["TeamMembershipService"]
