"""Agent usage read API."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Depends

from usage_limits.db.session import get_session
from usage_limits.schemas.limits import AgentTokenUsageRead
from usage_limits.services.limits import LimitStore

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/agents", tags=["agents"])
SESSION_DEP = Depends(get_session)


@router.get("/{agent_id}/token-usage", response_model=AgentTokenUsageRead)
async def get_agent_token_usage(
    agent_id: UUID,
    session: AsyncSession = SESSION_DEP,
) -> AgentTokenUsageRead:
    """Total tokens across all of an agent's interactions.

    Summed from the interaction log, independent of limit counters. An id with
    no recorded interactions reports zero totals.
    """
    usage = await LimitStore(session).get_agent_token_usage(agent_id)
    return AgentTokenUsageRead(
        agent_id=usage.agent_id,
        total_input_tokens=usage.total_input_tokens,
        total_output_tokens=usage.total_output_tokens,
        total_tokens=usage.total_tokens,
    )
