"""Limits API: CRUD, lazy cleanup, and validation lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from usage_limits.api.deps import get_organization_context, require_organization
from usage_limits.core.logging import get_logger
from usage_limits.db.session import get_session
from usage_limits.models.limits import Limit
from usage_limits.models.organizations import Organization
from usage_limits.schemas.common import OkResponse
from usage_limits.schemas.limits import (
    LimitCreate,
    LimitEntityType,
    LimitRead,
    LimitsCleanupRead,
    LimitType,
    LimitUpdate,
)
from usage_limits.services.limits import LimitStore
from usage_limits.services.limits_cleanup import LimitsCleanupService
from usage_limits.services.token_prices import TokenPriceService

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/limits", tags=["limits"])
SESSION_DEP = Depends(get_session)
ORG_CONTEXT_DEP = Depends(get_organization_context)
ORG_REQUIRED_DEP = Depends(require_organization)
logger = get_logger(__name__)


def _as_read(limit: Limit) -> LimitRead:
    return LimitRead(
        id=limit.id,
        entity_type=limit.entity_type,  # type: ignore[arg-type]
        entity_id=limit.entity_id,
        limit_type=limit.limit_type,  # type: ignore[arg-type]
        limit_value=limit.limit_value,
        model=limit.model,
        mcp_server_name=limit.mcp_server_name,
        tool_name=limit.tool_name,
        current_usage_tokens_in=limit.current_usage_tokens_in,
        current_usage_tokens_out=limit.current_usage_tokens_out,
        last_cleanup=limit.last_cleanup,
        created_at=limit.created_at,
        updated_at=limit.updated_at,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Limit not found")


@router.get("", response_model=list[LimitRead])
async def list_limits(
    entity_type: LimitEntityType | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    limit_type: LimitType | None = Query(default=None),
    session: AsyncSession = SESSION_DEP,
    organization: Organization | None = ORG_CONTEXT_DEP,
) -> list[LimitRead]:
    """List limits, resetting the caller organization's stale counters first."""
    if organization is not None:
        await LimitsCleanupService(session).cleanup_limits_if_needed(organization.id)
    await TokenPriceService(session).ensure_all_models_have_pricing()
    rows = await LimitStore(session).find_all(entity_type, entity_id, limit_type)
    return [_as_read(row) for row in rows]


@router.post("", response_model=LimitRead)
async def create_limit(
    payload: LimitCreate,
    session: AsyncSession = SESSION_DEP,
) -> LimitRead:
    """Create a limit for an organization, team, or agent."""
    limit = await LimitStore(session).create(payload)
    logger.info(
        "limits.api.created",
        extra={
            "limit_id": str(limit.id),
            "entity_type": limit.entity_type,
            "limit_type": limit.limit_type,
        },
    )
    return _as_read(limit)


@router.post("/cleanup", response_model=LimitsCleanupRead)
async def cleanup_limits(
    session: AsyncSession = SESSION_DEP,
    organization: Organization = ORG_REQUIRED_DEP,
) -> LimitsCleanupRead:
    """Reset the organization's limits whose cleanup interval has elapsed."""
    result = await LimitsCleanupService(session).cleanup_limits_if_needed(organization.id)
    return LimitsCleanupRead(
        organization_id=result.organization_id,
        cleanup_interval=result.cleanup_interval,
        cutoff=result.cutoff,
        reset_limit_ids=list(result.reset_limit_ids),
    )


@router.get("/validation/{entity_type}/{entity_id}", response_model=list[LimitRead])
async def get_limits_for_validation(
    entity_type: LimitEntityType,
    entity_id: str,
    limit_type: LimitType = Query(default="token_cost"),
    session: AsyncSession = SESSION_DEP,
) -> list[LimitRead]:
    """Return the limits an enforcement layer checks for one entity and kind."""
    rows = await LimitStore(session).find_limits_for_validation(entity_type, entity_id, limit_type)
    return [_as_read(row) for row in rows]


@router.get("/{limit_id}", response_model=LimitRead)
async def get_limit(
    limit_id: UUID,
    session: AsyncSession = SESSION_DEP,
) -> LimitRead:
    limit = await LimitStore(session).find_by_id(limit_id)
    if limit is None:
        raise _not_found()
    return _as_read(limit)


@router.patch("/{limit_id}", response_model=LimitRead)
async def patch_limit(
    limit_id: UUID,
    payload: LimitUpdate,
    session: AsyncSession = SESSION_DEP,
) -> LimitRead:
    """Apply a partial update to a limit."""
    limit = await LimitStore(session).patch(limit_id, payload)
    if limit is None:
        raise _not_found()
    return _as_read(limit)


@router.delete("/{limit_id}", response_model=OkResponse)
async def delete_limit(
    limit_id: UUID,
    session: AsyncSession = SESSION_DEP,
) -> OkResponse:
    if not await LimitStore(session).delete(limit_id):
        raise _not_found()
    logger.info("limits.api.deleted", extra={"limit_id": str(limit_id)})
    return OkResponse()
