"""Shared SQLModel base with a small query helper API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar
from uuid import UUID

from sqlmodel import SQLModel, col, select

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import SelectOfScalar

ModelT = TypeVar("ModelT", bound="QueryModel")


class QuerySet(Generic[ModelT]):
    """Chainable wrapper around a `select(Model)` statement."""

    def __init__(self, model: type[ModelT], statement: SelectOfScalar[ModelT]) -> None:
        self.model = model
        self.statement = statement

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.filter_by(**kwargs))

    def where(self, *criteria: Any) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.where(*criteria))

    def order_by(self, *clauses: Any) -> QuerySet[ModelT]:
        return QuerySet(self.model, self.statement.order_by(*clauses))

    async def all(self, session: AsyncSession) -> list[ModelT]:
        return list((await session.exec(self.statement)).all())

    async def first(self, session: AsyncSession) -> ModelT | None:
        return (await session.exec(self.statement.limit(1))).first()


class ModelManager(Generic[ModelT]):
    """Entry point returned by `Model.objects`."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def all_rows(self) -> QuerySet[ModelT]:
        return QuerySet(self.model, select(self.model))

    def by_id(self, obj_id: UUID) -> QuerySet[ModelT]:
        return self.all_rows().where(col(self.model.id) == obj_id)  # type: ignore[attr-defined]

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return self.all_rows().filter_by(**kwargs)


class _ManagerDescriptor:
    def __get__(self, instance: object, owner: type[ModelT]) -> ModelManager[ModelT]:
        return ModelManager(owner)


class QueryModel(SQLModel):
    """Base class for table models exposing `Model.objects` helpers."""

    objects: ClassVar[_ManagerDescriptor] = _ManagerDescriptor()
