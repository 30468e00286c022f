"""Base class for services bound to one async database session."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from sqlmodel import SQLModel

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

ModelT = TypeVar("ModelT", bound=SQLModel)


class DBService:
    """Holds the session a service reads and writes through."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_commit_refresh(self, row: ModelT) -> ModelT:
        self.session.add(row)
        await self.session.commit()
        await self.session.refresh(row)
        return row
