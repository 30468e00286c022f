"""Interaction recording API; each write meters usage into limits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, status

from usage_limits.api.deps import get_usage_tracker
from usage_limits.db.session import get_session
from usage_limits.models.interactions import Interaction
from usage_limits.schemas.interactions import InteractionCreate, InteractionRead
from usage_limits.services.interactions import InteractionService
from usage_limits.services.usage_tracking import UsageTracker

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/interactions", tags=["interactions"])
SESSION_DEP = Depends(get_session)
USAGE_TRACKER_DEP = Depends(get_usage_tracker)


def _as_read(interaction: Interaction) -> InteractionRead:
    return InteractionRead(
        id=interaction.id,
        agent_id=interaction.agent_id,
        model=interaction.model,
        input_tokens=interaction.input_tokens,
        output_tokens=interaction.output_tokens,
        created_at=interaction.created_at,
    )


@router.post("", response_model=InteractionRead)
async def create_interaction(
    payload: InteractionCreate,
    session: AsyncSession = SESSION_DEP,
    usage_tracker: UsageTracker = USAGE_TRACKER_DEP,
) -> InteractionRead:
    """Record an interaction and apply its tokens to matching limits."""
    interaction = await InteractionService(session, usage_tracker=usage_tracker).record(payload)
    if interaction is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent not found")
    return _as_read(interaction)
