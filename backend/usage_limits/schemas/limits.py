"""Schemas for limit CRUD, validation lookup, and usage aggregates."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Self
from uuid import UUID

from pydantic import Field, field_validator, model_validator
from sqlmodel import SQLModel

from usage_limits.schemas.common import NonEmptyStr

_RUNTIME_TYPE_REFERENCES = (datetime, UUID, NonEmptyStr)

LimitEntityType = Literal["organization", "team", "agent"]
LimitType = Literal["token_cost", "mcp_server_calls", "tool_calls"]

# Columns that may be omitted from a patch but never cleared.
_NON_NULLABLE_UPDATE_FIELDS = (
    "entity_type",
    "entity_id",
    "limit_type",
    "limit_value",
    "current_usage_tokens_in",
    "current_usage_tokens_out",
)


def _normalize_optional_text(value: object) -> object | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return value


def limit_qualifier_errors(
    *,
    limit_type: str,
    model: str | None,
    mcp_server_name: str | None,
    tool_name: str | None,
) -> list[str]:
    """Return messages for kind-specific qualifiers missing from a limit."""
    errors: list[str] = []
    if limit_type == "token_cost" and not model:
        errors.append("model is required for token_cost limits.")
    if limit_type == "mcp_server_calls" and not mcp_server_name:
        errors.append("mcp_server_name is required for mcp_server_calls limits.")
    if limit_type == "tool_calls" and (not mcp_server_name or not tool_name):
        errors.append("mcp_server_name and tool_name are required for tool_calls limits.")
    return errors


class LimitCreate(SQLModel):
    """Payload for creating a limit; qualifiers are checked against the kind."""

    entity_type: LimitEntityType
    entity_id: NonEmptyStr
    limit_type: LimitType
    limit_value: int = Field(ge=0)
    model: str | None = None
    mcp_server_name: str | None = None
    tool_name: str | None = None

    @field_validator("model", "mcp_server_name", "tool_name", mode="before")
    @classmethod
    def normalize_qualifiers(cls, value: object) -> object | None:
        return _normalize_optional_text(value)

    @model_validator(mode="after")
    def require_kind_qualifiers(self) -> Self:
        errors = limit_qualifier_errors(
            limit_type=self.limit_type,
            model=self.model,
            mcp_server_name=self.mcp_server_name,
            tool_name=self.tool_name,
        )
        if errors:
            raise ValueError(" ".join(errors))
        return self


class LimitUpdate(SQLModel):
    """Partial update payload; only explicitly sent fields are applied."""

    entity_type: LimitEntityType | None = None
    entity_id: NonEmptyStr | None = None
    limit_type: LimitType | None = None
    limit_value: int | None = Field(default=None, ge=0)
    model: str | None = None
    mcp_server_name: str | None = None
    tool_name: str | None = None
    current_usage_tokens_in: int | None = Field(default=None, ge=0)
    current_usage_tokens_out: int | None = Field(default=None, ge=0)

    @field_validator("model", "mcp_server_name", "tool_name", mode="before")
    @classmethod
    def normalize_qualifiers(cls, value: object) -> object | None:
        return _normalize_optional_text(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> Self:
        nulled = sorted(
            name
            for name in _NON_NULLABLE_UPDATE_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if nulled:
            msg = f"{', '.join(nulled)} cannot be null."
            raise ValueError(msg)
        return self


class LimitRead(SQLModel):
    """Limit read model including accumulated usage counters."""

    id: UUID
    entity_type: LimitEntityType
    entity_id: str
    limit_type: LimitType
    limit_value: int
    model: str | None = None
    mcp_server_name: str | None = None
    tool_name: str | None = None
    current_usage_tokens_in: int
    current_usage_tokens_out: int
    last_cleanup: datetime | None = None
    created_at: datetime
    updated_at: datetime


class LimitsCleanupRead(SQLModel):
    """Outcome of one organization cleanup pass."""

    organization_id: UUID
    cleanup_interval: str
    cutoff: datetime | None = None
    reset_limit_ids: list[UUID] = Field(default_factory=list)


class AgentTokenUsageRead(SQLModel):
    """Token totals summed over every recorded interaction of one agent."""

    agent_id: UUID
    total_input_tokens: int
    total_output_tokens: int
    total_tokens: int
