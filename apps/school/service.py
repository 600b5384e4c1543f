from datetime import date
from typing import Optional
from loguru import logger
from sqlmodel import col, or_
from framework.config import settings
from framework.database.errors import StorageFailure
from framework.exceptions.handler import BusinessException, NotFoundException
from framework.repository.pagination import PaginatedList
from framework.repository.unit_of_work import UnitOfWork
from .models import Student
from .repository import IStudentRepository


def _by_last_name(query):
    return query.order_by(col(Student.last_name), col(Student.id))


# sort_order values accepted by the student list
SORT_ORDERS = {
    "name_desc": lambda q: q.order_by(col(Student.last_name).desc(), col(Student.id)),
    "date": lambda q: q.order_by(col(Student.enrollment_date), col(Student.id)),
    "date_desc": lambda q: q.order_by(col(Student.enrollment_date).desc(), col(Student.id)),
}


class StudentService:
    def __init__(self, uow: UnitOfWork, students: IStudentRepository):
        """Initialize Student Service with UnitOfWork and the student repository."""
        self.uow = uow
        self.students = students

    async def list_students(
        self,
        search: Optional[str] = None,
        sort_order: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> PaginatedList[Student]:
        """
        One page of students, read without tracking.

        Args:
            search: substring matched against last name or first/middle name
            sort_order: name_desc, date, date_desc; anything else sorts by last name
            page: 1-based page number
            page_size: defaults to settings.DEFAULT_PAGE_SIZE
        """
        filter = None
        if search:
            filter = or_(
                col(Student.last_name).contains(search, autoescape=True),
                col(Student.first_mid_name).contains(search, autoescape=True),
            )
        query = self.students.get_as_queryable(
            filter=filter,
            order_by=SORT_ORDERS.get((sort_order or "").lower(), _by_last_name),
            as_no_tracking=True,
        )
        return await PaginatedList.create(query, page, page_size or settings.DEFAULT_PAGE_SIZE)

    async def get_details(self, student_id: int) -> Student:
        """Student with enrollments and their courses loaded."""
        found = await self.students.get(
            filter=col(Student.id) == student_id,
            include_properties="enrollments.course",
            as_no_tracking=True,
        )
        if not found:
            raise NotFoundException(f"Student {student_id} not found")
        return found[0]

    async def create(self, last_name: str, first_mid_name: str, enrollment_date: date) -> Student:
        student = Student(
            last_name=last_name,
            first_mid_name=first_mid_name,
            enrollment_date=enrollment_date,
        )
        await self.students.insert(student)
        await self._save(f"create student {last_name}")
        logger.info(f"Student {student.id} ({student.full_name}) created")
        return student

    async def edit(self, student_id: int, **fields) -> Student:
        student = await self.students.get_by_id(student_id)
        if student is None:
            raise NotFoundException(f"Student {student_id} not found")
        for name, value in fields.items():
            setattr(student, name, value)
        await self.students.update(student)
        await self._save(f"update student {student_id}")
        logger.info(f"Student {student_id} updated")
        return student

    async def delete(self, student_id: int) -> None:
        if not await self.students.delete_by_id(student_id):
            raise NotFoundException(f"Student {student_id} not found")
        await self._save(f"delete student {student_id}")
        logger.info(f"Student {student_id} deleted")

    async def _save(self, action: str) -> None:
        try:
            await self.uow.commit()
        except StorageFailure as e:
            logger.error(f"Failed to {action}: {e.message}")
            raise BusinessException(
                "Unable to save changes. Try again, and if the problem persists see your system administrator.",
                status_code=500,
                code=500,
            ) from e
