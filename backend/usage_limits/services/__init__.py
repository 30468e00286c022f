"""Usage limit services: store, metering, cleanup, and pricing upkeep."""

from usage_limits.services.limits import AgentTokenUsage, LimitStore
from usage_limits.services.limits_cleanup import LimitsCleanupResult, LimitsCleanupService
from usage_limits.services.usage_tracking import UsageFanoutResult, UsageTracker

__all__ = [
    "AgentTokenUsage",
    "LimitStore",
    "LimitsCleanupResult",
    "LimitsCleanupService",
    "UsageFanoutResult",
    "UsageTracker",
]
