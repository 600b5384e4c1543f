"""
Model registration for migrations: import all models that should be migrated by Alembic here.
"""
from apps.school.models import Course, Enrollment, Student

__all__ = ["Course", "Enrollment", "Student"]
