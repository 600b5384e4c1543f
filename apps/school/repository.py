"""School module repository implementations."""

from abc import ABC
from typing import Any, List, Optional
from framework.database.query import EntityQuery
from framework.repository.base import IRepository
from framework.repository.query import OrderBy
from .models import Student


class IStudentRepository(IRepository[Student], ABC):
    """Student repository contract; substitutable on its own in services and tests."""


class StudentRepository(IStudentRepository):
    """Student repository; every call is delegated to a generic repository."""

    def __init__(self, repository: IRepository[Student]):
        self._repository = repository

    async def get(
        self,
        filter: Optional[Any] = None,
        order_by: Optional[OrderBy] = None,
        include_properties: str = "",
        as_no_tracking: bool = False,
    ) -> List[Student]:
        return await self._repository.get(
            filter=filter,
            order_by=order_by,
            include_properties=include_properties,
            as_no_tracking=as_no_tracking,
        )

    def get_as_queryable(
        self,
        filter: Optional[Any] = None,
        order_by: Optional[OrderBy] = None,
        include_properties: str = "",
        as_no_tracking: bool = False,
    ) -> EntityQuery[Student]:
        return self._repository.get_as_queryable(
            filter=filter,
            order_by=order_by,
            include_properties=include_properties,
            as_no_tracking=as_no_tracking,
        )

    async def get_by_id(self, id: Any) -> Optional[Student]:
        return await self._repository.get_by_id(id)

    async def insert(self, entity: Student) -> None:
        await self._repository.insert(entity)

    async def delete(self, entity: Student) -> None:
        await self._repository.delete(entity)

    async def delete_by_id(self, id: Any) -> bool:
        return await self._repository.delete_by_id(id)

    async def update(self, entity: Student) -> None:
        await self._repository.update(entity)
