"""Test config and shared fixtures."""
import pytest
from datetime import date
from typing import AsyncGenerator
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from framework.database.sql_driver import create_session_factory
from framework.repository.unit_of_work import UnitOfWork
from apps.school.models import Course, Enrollment, Grade, Student


# In-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async test engine with the school schema."""
    # Import all models so they are registered in metadata
    import apps.models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    """Session factory configured like the application's."""
    return create_session_factory(engine)


@pytest.fixture
async def uow(session_factory) -> AsyncGenerator[UnitOfWork, None]:
    """Unit of work for the test body; disposed afterwards."""
    async with UnitOfWork.create(session_factory) as unit_of_work:
        yield unit_of_work


@pytest.fixture
def fresh_uow(session_factory):
    """Factory for additional, independent units of work (use with `async with`)."""
    def _create() -> UnitOfWork:
        return UnitOfWork.create(session_factory)
    return _create


@pytest.fixture
async def school(session_factory) -> dict:
    """Seed three students, two courses and their enrollments; return their ids."""
    async with UnitOfWork.create(session_factory) as seed:
        students = [
            Student(id=1, last_name="Alexander", first_mid_name="Carson", enrollment_date=date(2019, 9, 1)),
            Student(id=2, last_name="Alonso", first_mid_name="Meredith", enrollment_date=date(2017, 9, 1)),
            Student(id=3, last_name="Anand", first_mid_name="Arturo", enrollment_date=date(2018, 9, 1)),
        ]
        courses = [
            Course(course_id=1050, title="Chemistry", credits=3),
            Course(course_id=4022, title="Microeconomics", credits=3),
        ]
        enrollments = [
            Enrollment(id=1, student_id=1, course_id=1050, grade=Grade.A),
            Enrollment(id=2, student_id=1, course_id=4022, grade=Grade.C),
            Enrollment(id=3, student_id=2, course_id=1050, grade=None),
        ]
        for repo_model, items in ((Student, students), (Course, courses), (Enrollment, enrollments)):
            repository = seed.get_repository(repo_model)
            for item in items:
                await repository.insert(item)
        await seed.commit()
    return {"students": [1, 2, 3], "courses": [1050, 4022], "enrollments": [1, 2, 3]}


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the in-memory database."""
    from httpx import ASGITransport
    from main import app
    from apps.school.api.router import get_session_factory

    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
