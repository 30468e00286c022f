"""Meter interaction token usage into organization, team, and agent limits."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from usage_limits.core.logging import get_logger
from usage_limits.services.limits import LimitStore
from usage_limits.services.team_membership import TeamMembershipService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import async_sessionmaker
    from sqlmodel.ext.asyncio.session import AsyncSession

    from usage_limits.schemas.limits import LimitEntityType


class TeamMembershipLookup(Protocol):
    async def team_ids_for_agent(self, agent_id: UUID | str) -> list[str]: ...

    async def organization_id_for_team(self, team_id: UUID | str) -> str | None: ...


class InteractionLike(Protocol):
    id: UUID
    agent_id: UUID
    input_tokens: int | None
    output_tokens: int | None


@dataclass(frozen=True, slots=True)
class UsageTarget:
    entity_type: LimitEntityType
    entity_id: str


@dataclass(frozen=True, slots=True)
class UsageFanoutResult:
    input_tokens: int
    output_tokens: int
    targets: tuple[UsageTarget, ...] = ()
    failed: tuple[UsageTarget, ...] = ()


class UsageTracker:
    """Fan one interaction's tokens out to every applicable token_cost limit.

    Increments run concurrently, each in its own session. Failures are logged
    and never raised: metering may under-count but must not break the
    interaction write that triggered it. The increments are not transactional
    as a group.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        membership_factory: Callable[[AsyncSession], TeamMembershipLookup] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._session_maker = session_maker
        self._membership_factory = membership_factory or (lambda session: TeamMembershipService(session))
        self._logger = logger or get_logger(__name__)

    async def record_interaction_usage(self, interaction: InteractionLike) -> UsageFanoutResult:
        """Apply an interaction's token counts to org, team, and agent limits."""
        input_tokens = interaction.input_tokens or 0
        output_tokens = interaction.output_tokens or 0
        if input_tokens == 0 and output_tokens == 0:
            return UsageFanoutResult(input_tokens=0, output_tokens=0)

        targets: list[UsageTarget] = []
        try:
            targets.extend(await self._hierarchy_targets(interaction))
        except Exception:
            self._logger.exception(
                "usage.tracking.failed",
                extra={
                    "agent_id": str(interaction.agent_id),
                    "interaction_id": str(interaction.id),
                },
            )
        # Agent-level limits are metered even when team resolution fails.
        targets.append(UsageTarget(entity_type="agent", entity_id=str(interaction.agent_id)))

        outcomes = await asyncio.gather(
            *(self._increment_tokens(target, input_tokens, output_tokens) for target in targets)
        )
        failed = tuple(target for target, ok in zip(targets, outcomes, strict=True) if not ok)
        return UsageFanoutResult(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            targets=tuple(targets),
            failed=failed,
        )

    async def record_mcp_server_call(
        self,
        entity_type: LimitEntityType,
        entity_id: str,
        mcp_server_name: str,
    ) -> bool:
        """Count one MCP server call against the entity's mcp_server_calls limits."""
        try:
            async with self._session_maker() as session:
                await LimitStore(session).increment_mcp_server_calls(
                    entity_type,
                    entity_id,
                    mcp_server_name,
                )
        except Exception:
            self._logger.exception(
                "usage.tracking.mcp_call_failed",
                extra={
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "mcp_server_name": mcp_server_name,
                },
            )
            return False
        return True

    async def _hierarchy_targets(self, interaction: InteractionLike) -> list[UsageTarget]:
        async with self._session_maker() as session:
            membership = self._membership_factory(session)
            team_ids = await membership.team_ids_for_agent(interaction.agent_id)
            if not team_ids:
                self._logger.warning(
                    "usage.tracking.agent_without_teams",
                    extra={
                        "agent_id": str(interaction.agent_id),
                        "interaction_id": str(interaction.id),
                    },
                )
                organization_id = await self._fallback_organization_id(session, interaction)
                if organization_id is None:
                    return []
                return [UsageTarget(entity_type="organization", entity_id=organization_id)]

            resolved: list[tuple[str, str]] = []
            for team_id in team_ids:
                organization_id = await membership.organization_id_for_team(team_id)
                if organization_id is not None:
                    resolved.append((team_id, organization_id))

        if not resolved:
            return []
        # Only the first team's organization is charged, even when teams span
        # several organizations.
        targets = [UsageTarget(entity_type="organization", entity_id=resolved[0][1])]
        targets.extend(UsageTarget(entity_type="team", entity_id=team_id) for team_id, _ in resolved)
        return targets

    async def _fallback_organization_id(
        self,
        session: AsyncSession,
        interaction: InteractionLike,
    ) -> str | None:
        try:
            organization_id = await LimitStore(session).first_organization_entity_id()
        except Exception:
            self._logger.exception(
                "usage.tracking.organization_fallback_failed",
                extra={"agent_id": str(interaction.agent_id)},
            )
            return None
        if organization_id is None:
            self._logger.error(
                "usage.tracking.organization_usage_dropped",
                extra={
                    "agent_id": str(interaction.agent_id),
                    "interaction_id": str(interaction.id),
                },
            )
        return organization_id

    async def _increment_tokens(
        self,
        target: UsageTarget,
        input_tokens: int,
        output_tokens: int,
    ) -> bool:
        try:
            async with self._session_maker() as session:
                await LimitStore(session).update_token_limit_usage(
                    target.entity_type,
                    target.entity_id,
                    input_tokens,
                    output_tokens,
                )
        except Exception:
            self._logger.exception(
                "usage.tracking.increment_failed",
                extra={"entity_type": target.entity_type, "entity_id": target.entity_id},
            )
            return False
        return True


__all__ = [
    "TeamMembershipLookup",
    "UsageFanoutResult",
    "UsageTarget",
    "UsageTracker",
]
