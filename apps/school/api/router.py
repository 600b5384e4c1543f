from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from framework.database.manager import DatabaseManager
from framework.repository.base import BaseRepository
from framework.repository.unit_of_work import UnitOfWork
from framework.response import ResponseModel
from ..models import Student
from ..repository import StudentRepository
from ..service import StudentService

router = APIRouter()

class StudentSchema(BaseModel):
    last_name: str = Field(min_length=1, max_length=50)
    first_mid_name: str = Field(min_length=1, max_length=50)
    enrollment_date: date

def get_session_factory():
    return DatabaseManager.get_instance().sql.session_factory

async def get_uow(session_factory=Depends(get_session_factory)):
    """Dependency: one UnitOfWork per request, disposed when the request ends."""
    async with UnitOfWork.create(session_factory) as uow:
        yield uow

def get_student_service(uow: UnitOfWork = Depends(get_uow)) -> StudentService:
    """Dependency: create StudentService."""
    students = StudentRepository(BaseRepository(uow, Student))
    return StudentService(uow, students)

def _student_data(student: Student) -> dict:
    return student.model_dump(mode="json")

@router.get("")
async def list_students(
    search: Optional[str] = None,
    sort_order: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, le=100),
    service: StudentService = Depends(get_student_service)
):
    """List students with search, sorting and paging."""
    result = await service.list_students(search, sort_order, page, page_size)
    return ResponseModel.page(result, [_student_data(s) for s in result.items])

@router.get("/{student_id}")
async def get_student(student_id: int, service: StudentService = Depends(get_student_service)):
    """Student details with enrollments."""
    student = await service.get_details(student_id)
    data = _student_data(student)
    data["enrollments"] = [
        {
            "course_id": enrollment.course_id,
            "course_title": enrollment.course.title if enrollment.course else None,
            "grade": enrollment.grade.value if enrollment.grade else None,
        }
        for enrollment in student.enrollments
    ]
    return ResponseModel.success(data=data)

@router.post("")
async def create_student(data: StudentSchema, service: StudentService = Depends(get_student_service)):
    student = await service.create(data.last_name, data.first_mid_name, data.enrollment_date)
    return ResponseModel.success(data=_student_data(student))

@router.put("/{student_id}")
async def update_student(
    student_id: int,
    data: StudentSchema,
    service: StudentService = Depends(get_student_service)
):
    student = await service.edit(student_id, **data.model_dump())
    return ResponseModel.success(data=_student_data(student))

@router.delete("/{student_id}")
async def delete_student(student_id: int, service: StudentService = Depends(get_student_service)):
    await service.delete(student_id)
    return ResponseModel.success(data={"id": student_id})
