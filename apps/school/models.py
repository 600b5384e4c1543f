from datetime import date
from enum import Enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship


class Grade(str, Enum):
    """Letter grade of an enrollment."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class Student(SQLModel, table=True):
    __tablename__ = "students"

    id: Optional[int] = Field(default=None, primary_key=True)
    last_name: str = Field(max_length=50, index=True)
    first_mid_name: str = Field(max_length=50)
    enrollment_date: date = Field(default_factory=date.today)

    # Removing a student removes their enrollments
    enrollments: List["Enrollment"] = Relationship(
        back_populates="student",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )

    @property
    def full_name(self) -> str:
        return f"{self.last_name}, {self.first_mid_name}"


class Course(SQLModel, table=True):
    __tablename__ = "courses"

    # Course numbers are assigned by the registrar, not generated
    course_id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    title: str = Field(min_length=3, max_length=50)
    credits: int = Field(ge=0, le=5)

    enrollments: List["Enrollment"] = Relationship(back_populates="course")


class Enrollment(SQLModel, table=True):
    __tablename__ = "enrollments"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="courses.course_id", index=True)
    student_id: int = Field(foreign_key="students.id", index=True)
    grade: Optional[Grade] = Field(default=None, description="Empty until graded")

    course: Optional[Course] = Relationship(back_populates="enrollments")
    student: Optional[Student] = Relationship(back_populates="enrollments")
