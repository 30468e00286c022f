"""Schemas for recording agent interactions."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator
from sqlmodel import SQLModel

_RUNTIME_TYPE_REFERENCES = (datetime, UUID)


class InteractionCreate(SQLModel):
    """Payload for one completed agent interaction."""

    agent_id: UUID
    model: str | None = None
    input_tokens: int | None = Field(default=None, ge=0)
    output_tokens: int | None = Field(default=None, ge=0)

    @field_validator("model", mode="before")
    @classmethod
    def normalize_model(cls, value: object) -> object | None:
        if isinstance(value, str):
            return value.strip() or None
        return value


class InteractionRead(SQLModel):
    id: UUID
    agent_id: UUID
    model: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    created_at: datetime
