"""Lazy, read-triggered reset of organization limit usage counters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from usage_limits.core.config import settings
from usage_limits.core.logging import get_logger
from usage_limits.core.time import utcnow
from usage_limits.models.organizations import Organization
from usage_limits.services.db_service import DBService
from usage_limits.services.limits import LimitStore

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

CLEANUP_INTERVALS: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "12h": timedelta(hours=12),
    "24h": timedelta(days=1),
    "1w": timedelta(weeks=1),
    "1m": timedelta(days=30),
}


def cleanup_interval(value: str | None) -> tuple[str, timedelta]:
    """Normalize an interval key, falling back to the configured default."""
    key = str(value or "").strip().lower()
    if key in CLEANUP_INTERVALS:
        return key, CLEANUP_INTERVALS[key]
    default_key = settings.default_limit_cleanup_interval
    return default_key, CLEANUP_INTERVALS.get(default_key, CLEANUP_INTERVALS["1h"])


def cleanup_cutoff(interval: str | None, *, now: datetime | None = None) -> datetime:
    """Return the instant before which a limit's last cleanup counts as stale."""
    _, delta = cleanup_interval(interval)
    return (now or utcnow()) - delta


@dataclass(frozen=True)
class LimitsCleanupResult:
    organization_id: UUID
    cleanup_interval: str
    cutoff: datetime | None = None
    reset_limit_ids: list[UUID] = field(default_factory=list)


class LimitsCleanupService(DBService):
    """Reset organization-scoped limits whose cleanup interval has elapsed.

    Runs only when something asks for it (a limits listing or an explicit
    cleanup request). Organizations with no such traffic are never reset.
    """

    def __init__(self, session: AsyncSession, *, logger: logging.Logger | None = None) -> None:
        super().__init__(session)
        self._logger = logger or get_logger(__name__)

    async def cleanup_limits_if_needed(
        self,
        organization_id: UUID,
        *,
        now: datetime | None = None,
    ) -> LimitsCleanupResult:
        organization = await Organization.objects.by_id(organization_id).first(self.session)
        if organization is None:
            return LimitsCleanupResult(
                organization_id=organization_id,
                cleanup_interval=settings.default_limit_cleanup_interval,
            )

        interval_key, _ = cleanup_interval(organization.limit_cleanup_interval)
        cutoff = cleanup_cutoff(interval_key, now=now)
        store = LimitStore(self.session)
        due = await store.find_limits_needing_cleanup(organization.id, cutoff)
        reset_ids: list[UUID] = []
        for limit in due:
            if await store.reset_limit_usage(limit.id) is not None:
                reset_ids.append(limit.id)

        if reset_ids:
            self._logger.info(
                "limits.cleanup.completed",
                extra={
                    "organization_id": str(organization.id),
                    "cleanup_interval": interval_key,
                    "reset_count": len(reset_ids),
                },
            )
        return LimitsCleanupResult(
            organization_id=organization.id,
            cleanup_interval=interval_key,
            cutoff=cutoff,
            reset_limit_ids=reset_ids,
        )


__all__ = [
    "CLEANUP_INTERVALS",
    "LimitsCleanupResult",
    "LimitsCleanupService",
    "cleanup_cutoff",
    "cleanup_interval",
]
