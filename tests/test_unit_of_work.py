"""Unit of work test cases: commit atomicity and disposal."""
import asyncio
import pytest
from datetime import date
from unittest.mock import AsyncMock
from sqlalchemy.exc import IntegrityError, OperationalError

from framework.database.errors import StorageFailure
from framework.database.tracking import EntityState
from framework.repository.base import BaseRepository
from framework.repository.unit_of_work import UnitOfWork
from apps.school.models import Student


def make_student(id: int, last_name: str) -> Student:
    return Student(id=id, last_name=last_name, first_mid_name="Test", enrollment_date=date(2020, 9, 1))


class TestCommit:
    """Atomic commit and the pending change set."""

    @pytest.mark.asyncio
    async def test_commit_without_changes(self, uow: UnitOfWork):
        await uow.commit()

        assert uow.context.pending_changes() == []

    @pytest.mark.asyncio
    async def test_commit_clears_pending_changes(self, uow: UnitOfWork):
        students = uow.get_repository(Student)
        await students.insert(make_student(7, "Seven"))
        assert len(uow.context.pending_changes()) == 1

        await uow.commit()

        assert uow.context.pending_changes() == []

    @pytest.mark.asyncio
    async def test_rejected_commit_keeps_pending_changes(self, uow: UnitOfWork, fresh_uow, school):
        students = uow.get_repository(Student)
        newcomer = make_student(5, "Newcomer")
        duplicate = make_student(1, "Duplicate")
        await students.insert(newcomer)
        await students.insert(duplicate)

        with pytest.raises(StorageFailure) as exc_info:
            await uow.commit()

        assert isinstance(exc_info.value.orig, IntegrityError)
        pending = uow.context.pending_changes()
        assert sorted(entry.entity.id for entry in pending) == [1, 5]
        assert all(entry.state is EntityState.ADDED for entry in pending)

        async with fresh_uow() as other:
            assert await other.get_repository(Student).get_by_id(5) is None
            assert (await other.get_repository(Student).get_by_id(1)).last_name == "Alexander"

    @pytest.mark.asyncio
    async def test_commit_can_be_retried_after_fixing_the_cause(self, uow: UnitOfWork, fresh_uow, school):
        students = uow.get_repository(Student)
        newcomer = make_student(5, "Newcomer")
        duplicate = make_student(1, "Duplicate")
        await students.insert(newcomer)
        await students.insert(duplicate)
        with pytest.raises(StorageFailure):
            await uow.commit()

        await students.delete(duplicate)
        await uow.commit()

        async with fresh_uow() as other:
            assert (await other.get_repository(Student).get_by_id(5)).last_name == "Newcomer"

    @pytest.mark.asyncio
    async def test_rejected_commit_keeps_modifications(self, uow: UnitOfWork, fresh_uow, school):
        students = uow.get_repository(Student)
        student = await students.get_by_id(2)
        student.last_name = "Alonso-Diaz"
        duplicate = make_student(1, "Duplicate")
        await students.insert(duplicate)

        with pytest.raises(StorageFailure):
            await uow.commit()

        assert uow.context.entry(student).state is EntityState.MODIFIED
        await students.delete(duplicate)
        await uow.commit()

        async with fresh_uow() as other:
            assert (await other.get_repository(Student).get_by_id(2)).last_name == "Alonso-Diaz"

    @pytest.mark.asyncio
    async def test_rejected_commit_keeps_tracked_fields_readable(self, uow: UnitOfWork, school):
        students = uow.get_repository(Student)
        student = await students.get_by_id(2)
        untouched = await students.get_by_id(3)
        student.last_name = "Alonso-Diaz"
        await students.insert(make_student(1, "Duplicate"))

        with pytest.raises(StorageFailure):
            await uow.commit()

        assert student.first_mid_name == "Meredith"
        assert student.enrollment_date == date(2017, 9, 1)
        assert student.last_name == "Alonso-Diaz"
        assert untouched.last_name == "Anand"
        assert uow.context.entry(student).state is EntityState.MODIFIED
        assert uow.context.entry(untouched).state is EntityState.UNMODIFIED

    @pytest.mark.asyncio
    async def test_rejected_commit_drops_generated_keys(self, uow: UnitOfWork, fresh_uow, school):
        students = uow.get_repository(Student)
        newcomer = Student(last_name="Newcomer", first_mid_name="Test", enrollment_date=date(2020, 9, 1))
        duplicate = make_student(1, "Duplicate")
        await students.insert(newcomer)
        await students.insert(duplicate)

        with pytest.raises(StorageFailure):
            await uow.commit()

        assert newcomer.id is None
        assert uow.context.entry(newcomer).state is EntityState.ADDED

        await students.delete(duplicate)
        await uow.commit()

        assert newcomer.id is not None
        async with fresh_uow() as other:
            assert (await other.get_repository(Student).get_by_id(newcomer.id)).last_name == "Newcomer"

    @pytest.mark.asyncio
    async def test_rejected_commit_keeps_pending_deletion(self, uow: UnitOfWork, fresh_uow, school):
        students = uow.get_repository(Student)
        victim = await students.get_by_id(3)
        await students.delete(victim)
        duplicate = make_student(1, "Duplicate")
        await students.insert(duplicate)

        with pytest.raises(StorageFailure):
            await uow.commit()

        assert uow.context.entry(victim).state is EntityState.DELETED
        assert victim.last_name == "Anand"

        await students.delete(duplicate)
        await uow.commit()

        async with fresh_uow() as other:
            assert await other.get_repository(Student).get_by_id(3) is None

    @pytest.mark.asyncio
    async def test_cancelled_query_leaves_pending_changes(self, uow: UnitOfWork, school):
        students = uow.get_repository(Student)
        await students.insert(make_student(5, "Newcomer"))
        student = await students.get_by_id(2)
        student.last_name = "Alonso-Diaz"

        def snapshot():
            return sorted((entry.entity.id, entry.state) for entry in uow.context.pending_changes())

        before = snapshot()
        task = asyncio.ensure_future(students.get(include_properties="enrollments.course"))
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert snapshot() == before == [(2, EntityState.MODIFIED), (5, EntityState.ADDED)]

    @pytest.mark.asyncio
    async def test_simulated_storage_fault(self, uow: UnitOfWork, fresh_uow, monkeypatch):
        students = uow.get_repository(Student)
        await students.insert(make_student(2, "Bo"))
        await students.insert(make_student(3, "Cy"))
        fault = OperationalError("COMMIT", {}, Exception("disk I/O error"))
        monkeypatch.setattr(uow.context.session, "commit", AsyncMock(side_effect=fault))

        with pytest.raises(StorageFailure) as exc_info:
            await uow.commit()

        assert exc_info.value.orig is fault
        pending = uow.context.pending_changes()
        assert sorted(entry.entity.last_name for entry in pending) == ["Bo", "Cy"]
        async with fresh_uow() as other:
            assert await other.get_repository(Student).get() == []

        monkeypatch.undo()
        await uow.commit()
        async with fresh_uow() as other:
            assert len(await other.get_repository(Student).get()) == 2

    @pytest.mark.asyncio
    async def test_cancelled_commit_keeps_pending_changes(self, uow: UnitOfWork, monkeypatch):
        students = uow.get_repository(Student)
        await students.insert(make_student(2, "Bo"))
        monkeypatch.setattr(
            uow.context.session, "commit", AsyncMock(side_effect=asyncio.CancelledError())
        )

        with pytest.raises(asyncio.CancelledError):
            await uow.commit()

        assert [entry.state for entry in uow.context.pending_changes()] == [EntityState.ADDED]


class TestLifecycle:
    """Disposal and repository wiring."""

    @pytest.mark.asyncio
    async def test_leaving_the_block_disposes_without_commit(self, fresh_uow):
        async with fresh_uow() as unit:
            await unit.get_repository(Student).insert(make_student(9, "Uncommitted"))

        assert unit.context.disposed
        async with fresh_uow() as other:
            assert await other.get_repository(Student).get_by_id(9) is None

    @pytest.mark.asyncio
    async def test_disposed_after_exception(self, fresh_uow):
        with pytest.raises(RuntimeError):
            async with fresh_uow() as unit:
                raise RuntimeError("boom")

        assert unit.context.disposed

    @pytest.mark.asyncio
    async def test_disposed_after_failed_commit(self, fresh_uow, school):
        with pytest.raises(StorageFailure):
            async with fresh_uow() as unit:
                await unit.get_repository(Student).insert(make_student(1, "Duplicate"))
                await unit.commit()

        assert unit.context.disposed

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, uow: UnitOfWork):
        await uow.dispose()
        await uow.dispose()

        assert uow.context.disposed

    @pytest.mark.asyncio
    async def test_get_repository_is_cached_per_model(self, uow: UnitOfWork):
        repository = uow.get_repository(Student)

        assert isinstance(repository, BaseRepository)
        assert repository is uow.get_repository(Student)
        assert repository.model is Student
        assert uow.context.set(Student) is repository.entity_set
