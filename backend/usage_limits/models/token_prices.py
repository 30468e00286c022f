"""Per-model token pricing used to value metered usage."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field

from usage_limits.core.time import utcnow
from usage_limits.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class TokenPrice(QueryModel, table=True):
    """Price per million tokens for one model, stored as decimal strings."""

    __tablename__ = "token_prices"  # pyright: ignore[reportAssignmentType]
    __table_args__ = (UniqueConstraint("model", name="uq_token_prices_model"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    model: str = Field(index=True)
    price_per_million_input: str
    price_per_million_output: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
