"""Organization limit cleanup cadence API."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from usage_limits.core.time import utcnow
from usage_limits.db.session import get_session
from usage_limits.models.organizations import Organization
from usage_limits.schemas.organizations import (
    LimitCleanupIntervalRead,
    LimitCleanupIntervalUpdate,
)

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/organizations", tags=["organizations"])
SESSION_DEP = Depends(get_session)


async def _organization_or_404(session: AsyncSession, organization_id: UUID) -> Organization:
    organization = await Organization.objects.by_id(organization_id).first(session)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return organization


@router.get("/{organization_id}/limit-cleanup-interval", response_model=LimitCleanupIntervalRead)
async def get_limit_cleanup_interval(
    organization_id: UUID,
    session: AsyncSession = SESSION_DEP,
) -> LimitCleanupIntervalRead:
    organization = await _organization_or_404(session, organization_id)
    return LimitCleanupIntervalRead(
        organization_id=organization.id,
        limit_cleanup_interval=organization.limit_cleanup_interval,
    )


@router.patch("/{organization_id}/limit-cleanup-interval", response_model=LimitCleanupIntervalRead)
async def update_limit_cleanup_interval(
    organization_id: UUID,
    payload: LimitCleanupIntervalUpdate,
    session: AsyncSession = SESSION_DEP,
) -> LimitCleanupIntervalRead:
    """Change how often the organization's limit counters are reset."""
    organization = await _organization_or_404(session, organization_id)
    organization.limit_cleanup_interval = payload.limit_cleanup_interval
    organization.updated_at = utcnow()
    session.add(organization)
    await session.commit()
    await session.refresh(organization)
    return LimitCleanupIntervalRead(
        organization_id=organization.id,
        limit_cleanup_interval=organization.limit_cleanup_interval,
    )
