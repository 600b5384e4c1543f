"""
Composable, deferred queries over one entity set.
"""

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select
from sqlmodel import SQLModel, func, select

from .errors import InvalidIncludeError, StorageFailure

if TYPE_CHECKING:
    from .context import DbContext

T = TypeVar("T", bound=SQLModel)


def resolve_include(model: Type[SQLModel], path: str):
    """Build a selectinload chain for a dotted navigation path (e.g. 'enrollments.course')."""
    loader = None
    current = model
    for name in path.split("."):
        relationships = inspect(current).relationships
        if name not in relationships:
            raise InvalidIncludeError(
                f"'{current.__name__}' has no navigation named '{name}' (include path '{path}')"
            )
        attr = getattr(current, name)
        loader = selectinload(attr) if loader is None else loader.selectinload(attr)
        current = relationships[name].mapper.class_
    return loader


class EntityQuery(Generic[T]):
    """
    Query over the entity set of one model.

    Every builder method returns a new query; nothing touches the database until
    one of the terminal coroutines (to_list, first, count) is awaited.
    """

    def __init__(
        self,
        context: "DbContext",
        model: Type[T],
        statement: Optional[Select] = None,
        includes: Tuple[str, ...] = (),
        no_tracking: bool = False,
    ):
        self.context = context
        self.model = model
        self.statement = statement if statement is not None else select(model)
        self.includes = includes
        self.no_tracking = no_tracking

    def __repr__(self) -> str:
        return f"EntityQuery[{self.model.__name__}]"

    def _clone(self, **changes: Any) -> "EntityQuery[T]":
        params = dict(
            statement=self.statement,
            includes=self.includes,
            no_tracking=self.no_tracking,
        )
        params.update(changes)
        return EntityQuery(self.context, self.model, **params)

    def where(self, *criteria) -> "EntityQuery[T]":
        return self._clone(statement=self.statement.where(*criteria))

    def include(self, path: str) -> "EntityQuery[T]":
        """Eager-load a navigation; the path is resolved when the query runs."""
        return self._clone(includes=self.includes + (path,))

    def as_no_tracking(self) -> "EntityQuery[T]":
        return self._clone(no_tracking=True)

    def order_by(self, *clauses) -> "EntityQuery[T]":
        return self._clone(statement=self.statement.order_by(*clauses))

    def offset(self, offset: int) -> "EntityQuery[T]":
        return self._clone(statement=self.statement.offset(offset))

    def limit(self, limit: int) -> "EntityQuery[T]":
        return self._clone(statement=self.statement.limit(limit))

    def build(self) -> Select:
        """Final SELECT with the eager-load options attached."""
        statement = self.statement
        for path in self.includes:
            statement = statement.options(resolve_include(self.model, path))
        return statement

    async def to_list(self) -> List[T]:
        """
        Run the query and return the matching entities.

        No-tracking queries run in a short-lived sibling session from the same
        factory. That session holds its own pooled connection and transaction,
        so it sees committed data only: rows written by the owning session's
        open transaction are not visible to it. Loading through the owning
        session is not an option, since its identity map would hand back the
        instances it already tracks.
        """
        statement = self.build()
        if self.no_tracking:
            async with self.context.detached_reader() as reader:
                return list(await self._execute(reader, statement))
        return list(await self._execute(self.context.session, statement))

    async def first(self) -> Optional[T]:
        items = await self.limit(1).to_list()
        return items[0] if items else None

    async def count(self) -> int:
        """Count matching rows, ignoring ordering and paging."""
        subquery = self.statement.order_by(None).limit(None).offset(None).subquery()
        statement = select(func.count()).select_from(subquery)
        try:
            result = await self.context.session.exec(statement)
            return result.one()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Count query on {self.model.__name__} failed: {e}", orig=e) from e

    async def _execute(self, session, statement: Select):
        try:
            result = await session.exec(statement)
            return result.all()
        except SQLAlchemyError as e:
            raise StorageFailure(f"Query on {self.model.__name__} failed: {e}", orig=e) from e
