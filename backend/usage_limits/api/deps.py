"""Shared FastAPI dependencies for organization context and services."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status

from usage_limits.db.session import get_database, get_session
from usage_limits.models.organizations import Organization
from usage_limits.services.usage_tracking import UsageTracker

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

SESSION_DEP = Depends(get_session)


async def get_organization_context(
    x_organization_id: UUID | None = Header(default=None),
    session: AsyncSession = SESSION_DEP,
) -> Organization | None:
    """Resolve the caller's organization from `X-Organization-Id`, if sent."""
    if x_organization_id is None:
        return None
    organization = await Organization.objects.by_id(x_organization_id).first(session)
    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organization not found",
        )
    return organization


async def require_organization(
    organization: Organization | None = Depends(get_organization_context),
) -> Organization:
    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Organization-Id header is required",
        )
    return organization


def get_usage_tracker(request: Request) -> UsageTracker:
    """Build a tracker over the app database so increments get their own sessions."""
    return UsageTracker(get_database(request).session_maker)
