"""Repository for limit records and their usage counters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlmodel import col, select

from usage_limits.core.time import utcnow
from usage_limits.models.interactions import Interaction
from usage_limits.models.limits import Limit
from usage_limits.services.db_service import DBService

if TYPE_CHECKING:
    from usage_limits.schemas.limits import LimitCreate, LimitEntityType, LimitType, LimitUpdate


@dataclass(frozen=True, slots=True)
class AgentTokenUsage:
    agent_id: UUID
    total_input_tokens: int
    total_output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens


class LimitStore(DBService):
    """CRUD, aggregate queries, and counter updates over the `limits` table.

    The store does not check kind-specific qualifiers (`model`,
    `mcp_server_name`, `tool_name`); request schemas do that.
    """

    async def create(self, data: LimitCreate) -> Limit:
        now = utcnow()
        limit = Limit(**data.model_dump(), created_at=now, updated_at=now)
        return await self.add_commit_refresh(limit)

    async def find_all(
        self,
        entity_type: LimitEntityType | None = None,
        entity_id: str | None = None,
        limit_type: LimitType | None = None,
    ) -> list[Limit]:
        """Return limits matching every provided filter; no filters returns all rows."""
        statement = select(Limit)
        if entity_type:
            statement = statement.where(col(Limit.entity_type) == entity_type)
        if entity_id:
            statement = statement.where(col(Limit.entity_id) == entity_id)
        if limit_type:
            statement = statement.where(col(Limit.limit_type) == limit_type)
        statement = statement.order_by(col(Limit.created_at).asc())
        return list((await self.session.exec(statement)).all())

    async def find_by_id(self, limit_id: UUID) -> Limit | None:
        return await Limit.objects.by_id(limit_id).first(self.session)

    async def patch(self, limit_id: UUID, data: LimitUpdate | dict[str, Any]) -> Limit | None:
        limit = await self.find_by_id(limit_id)
        if limit is None:
            return None
        updates = data if isinstance(data, dict) else data.model_dump(exclude_unset=True)
        for key, value in updates.items():
            setattr(limit, key, value)
        limit.updated_at = utcnow()
        return await self.add_commit_refresh(limit)

    async def delete(self, limit_id: UUID) -> bool:
        limit = await self.find_by_id(limit_id)
        if limit is None:
            return False
        await self.session.delete(limit)
        await self.session.commit()
        return True

    async def get_agent_token_usage(self, agent_id: UUID) -> AgentTokenUsage:
        """Sum input/output tokens over every interaction recorded for an agent."""
        statement = select(
            func.coalesce(func.sum(col(Interaction.input_tokens)), 0),
            func.coalesce(func.sum(col(Interaction.output_tokens)), 0),
        ).where(col(Interaction.agent_id) == agent_id)
        total_in, total_out = (await self.session.exec(statement)).one()
        return AgentTokenUsage(
            agent_id=agent_id,
            total_input_tokens=int(total_in or 0),
            total_output_tokens=int(total_out or 0),
        )

    async def update_token_limit_usage(
        self,
        entity_type: LimitEntityType,
        entity_id: str,
        input_tokens: int,
        output_tokens: int,
    ) -> int:
        """Add token deltas to every token_cost limit of one entity.

        Matches on entity and kind only, so each per-model limit of the entity
        receives the same delta. Returns the number of rows updated.
        """
        statement = (
            update(Limit)
            .where(col(Limit.entity_type) == entity_type)
            .where(col(Limit.entity_id) == entity_id)
            .where(col(Limit.limit_type) == "token_cost")
            .values(
                current_usage_tokens_in=col(Limit.current_usage_tokens_in) + input_tokens,
                current_usage_tokens_out=col(Limit.current_usage_tokens_out) + output_tokens,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        await self.session.commit()
        return int(result.rowcount or 0)

    async def increment_mcp_server_calls(
        self,
        entity_type: LimitEntityType,
        entity_id: str,
        mcp_server_name: str,
    ) -> int:
        """Count one call against matching mcp_server_calls limits."""
        statement = (
            update(Limit)
            .where(col(Limit.entity_type) == entity_type)
            .where(col(Limit.entity_id) == entity_id)
            .where(col(Limit.limit_type) == "mcp_server_calls")
            .where(col(Limit.mcp_server_name) == mcp_server_name)
            .values(
                current_usage_tokens_in=col(Limit.current_usage_tokens_in) + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        await self.session.commit()
        return int(result.rowcount or 0)

    async def first_organization_entity_id(self) -> str | None:
        statement = (
            select(Limit.entity_id)
            .where(col(Limit.entity_type) == "organization")
            .limit(1)
        )
        return (await self.session.exec(statement)).first()

    async def find_limits_needing_cleanup(
        self,
        organization_id: UUID | str,
        cutoff: datetime,
    ) -> list[Limit]:
        """Organization-scoped limits never cleaned up or last cleaned before `cutoff`."""
        statement = (
            select(Limit)
            .where(col(Limit.entity_type) == "organization")
            .where(col(Limit.entity_id) == str(organization_id))
            .where(
                or_(
                    col(Limit.last_cleanup).is_(None),
                    col(Limit.last_cleanup) < cutoff,
                )
            )
            .order_by(col(Limit.created_at).asc())
        )
        return list((await self.session.exec(statement)).all())

    async def reset_limit_usage(self, limit_id: UUID) -> Limit | None:
        limit = await self.find_by_id(limit_id)
        if limit is None:
            return None
        now = utcnow()
        limit.current_usage_tokens_in = 0
        limit.current_usage_tokens_out = 0
        limit.last_cleanup = now
        limit.updated_at = now
        return await self.add_commit_refresh(limit)

    async def find_limits_for_validation(
        self,
        entity_type: LimitEntityType,
        entity_id: str,
        limit_type: LimitType = "token_cost",
    ) -> list[Limit]:
        """Limits an enforcement layer compares against before allowing more work."""
        statement = (
            select(Limit)
            .where(col(Limit.entity_type) == entity_type)
            .where(col(Limit.entity_id) == entity_id)
            .where(col(Limit.limit_type) == limit_type)
            .order_by(col(Limit.created_at).asc())
        )
        return list((await self.session.exec(statement)).all())


__all__ = ["AgentTokenUsage", "LimitStore"]
