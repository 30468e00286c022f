"""Public schema exports shared across API route modules."""

from usage_limits.schemas.common import OkResponse
from usage_limits.schemas.interactions import InteractionCreate, InteractionRead
from usage_limits.schemas.limits import (
    AgentTokenUsageRead,
    LimitCreate,
    LimitRead,
    LimitsCleanupRead,
    LimitUpdate,
)
from usage_limits.schemas.organizations import (
    LimitCleanupIntervalRead,
    LimitCleanupIntervalUpdate,
)

__all__ = [
    "AgentTokenUsageRead",
    "InteractionCreate",
    "InteractionRead",
    "LimitCleanupIntervalRead",
    "LimitCleanupIntervalUpdate",
    "LimitCreate",
    "LimitRead",
    "LimitUpdate",
    "LimitsCleanupRead",
    "OkResponse",
]
