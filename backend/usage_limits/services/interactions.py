"""Persist agent interactions and meter their usage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from usage_limits.core.time import utcnow
from usage_limits.models.agents import Agent
from usage_limits.models.interactions import Interaction
from usage_limits.services.db_service import DBService

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from usage_limits.schemas.interactions import InteractionCreate
    from usage_limits.services.usage_tracking import UsageTracker


class InteractionService(DBService):
    """Write interactions, then hand them to the usage tracker."""

    def __init__(self, session: AsyncSession, *, usage_tracker: UsageTracker) -> None:
        super().__init__(session)
        self._usage_tracker = usage_tracker

    async def record(self, payload: InteractionCreate) -> Interaction | None:
        """Store one interaction; returns None when the agent does not exist."""
        agent = await Agent.objects.by_id(payload.agent_id).first(self.session)
        if agent is None:
            return None
        interaction = Interaction(
            agent_id=agent.id,
            model=payload.model,
            input_tokens=payload.input_tokens,
            output_tokens=payload.output_tokens,
            created_at=utcnow(),
        )
        await self.add_commit_refresh(interaction)
        # Never raises; metering failures are logged by the tracker.
        await self._usage_tracker.record_interaction_usage(interaction)
        return interaction


__all__ = ["InteractionService"]
