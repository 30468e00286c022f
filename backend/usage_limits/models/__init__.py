"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from usage_limits.models.agent_teams import AgentTeam
from usage_limits.models.agents import Agent
from usage_limits.models.interactions import Interaction
from usage_limits.models.limits import Limit
from usage_limits.models.organizations import Organization
from usage_limits.models.teams import Team
from usage_limits.models.token_prices import TokenPrice

__all__ = [
    "AgentTeam",
    "Agent",
    "Interaction",
    "Limit",
    "Organization",
    "Team",
    "TokenPrice",
]
