"""
Repository abstract base class and generic implementation.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Generic, List, Optional, Type, TypeVar

from sqlmodel import SQLModel

from framework.database.query import EntityQuery
from framework.database.tracking import EntityState
from .query import OrderBy, QuerySpec

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork

T = TypeVar("T", bound=SQLModel)


class IRepository(ABC, Generic[T]):
    """Repository interface; defines standard data access API."""

    @abstractmethod
    async def get(
        self,
        filter: Optional[Any] = None,
        order_by: Optional[OrderBy] = None,
        include_properties: str = "",
        as_no_tracking: bool = False,
    ) -> List[T]:
        """Materialize the entities matching the query specification."""
        pass

    @abstractmethod
    def get_as_queryable(
        self,
        filter: Optional[Any] = None,
        order_by: Optional[OrderBy] = None,
        include_properties: str = "",
        as_no_tracking: bool = False,
    ) -> EntityQuery[T]:
        """Same composition as get(), returned unexecuted."""
        pass

    @abstractmethod
    async def get_by_id(self, id: Any) -> Optional[T]:
        """Get entity by primary key, or None."""
        pass

    @abstractmethod
    async def insert(self, entity: T) -> None:
        """Register entity for insertion on the next commit."""
        pass

    @abstractmethod
    async def delete(self, entity: T) -> None:
        """Register entity for deletion on the next commit."""
        pass

    @abstractmethod
    async def delete_by_id(self, id: Any) -> bool:
        """Register the entity with this key for deletion; False if there is none."""
        pass

    @abstractmethod
    async def update(self, entity: T) -> None:
        """Register the whole entity as modified."""
        pass


class BaseRepository(IRepository[T]):
    """Generic repository over one entity set of a unit of work; entity repositories wrap it."""

    def __init__(self, unit_of_work: "UnitOfWork", model: Type[T]):
        """Initialize repository with the unit of work and model."""
        self.unit_of_work = unit_of_work
        self.model = model
        self.entity_set = unit_of_work.context.set(model)

    def __repr__(self) -> str:
        return f"BaseRepository[{self.model.__name__}]"

    def query(self, spec: QuerySpec) -> EntityQuery[T]:
        """Build the query described by spec without running it."""
        return spec.apply(self.entity_set.query())

    async def get(
        self,
        filter: Optional[Any] = None,
        order_by: Optional[OrderBy] = None,
        include_properties: str = "",
        as_no_tracking: bool = False,
    ) -> List[T]:
        query = self.get_as_queryable(filter, order_by, include_properties, as_no_tracking)
        return await query.to_list()

    def get_as_queryable(
        self,
        filter: Optional[Any] = None,
        order_by: Optional[OrderBy] = None,
        include_properties: str = "",
        as_no_tracking: bool = False,
    ) -> EntityQuery[T]:
        spec = QuerySpec(
            filter=filter,
            order_by=order_by,
            include_properties=include_properties,
            as_no_tracking=as_no_tracking,
        )
        return self.query(spec)

    async def get_by_id(self, id: Any) -> Optional[T]:
        return await self.entity_set.find(id)

    async def insert(self, entity: T) -> None:
        self.entity_set.add(entity)

    async def delete(self, entity: T) -> None:
        if self.unit_of_work.context.entry(entity).state is EntityState.DETACHED:
            self.entity_set.attach(entity)
        await self.entity_set.remove(entity)

    async def delete_by_id(self, id: Any) -> bool:
        """Delete by primary key; a missing key is a no-op and returns False."""
        entity = await self.get_by_id(id)
        if entity is None:
            return False
        await self.delete(entity)
        return True

    async def update(self, entity: T) -> None:
        """Attach entity and mark all its columns modified (whole-row overwrite)."""
        self.entity_set.attach(entity)
        if self.unit_of_work.context.entry(entity).state is not EntityState.ADDED:
            self.entity_set.mark_modified(entity)
