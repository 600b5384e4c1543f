"""
DbContext: one open session to the relational store plus typed entity sets.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Generic, List, Optional, Type, TypeVar

from loguru import logger
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified, set_committed_value
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from .errors import StorageFailure
from .query import EntityQuery
from .tracking import EntityEntry

T = TypeVar("T", bound=SQLModel)


class EntitySet(Generic[T]):
    """Queryable and mutable collection of one entity type."""

    def __init__(self, context: "DbContext", model: Type[T]):
        self.context = context
        self.model = model

    def __repr__(self) -> str:
        return f"EntitySet[{self.model.__name__}]"

    def query(self) -> EntityQuery[T]:
        return EntityQuery(self.context, self.model)

    async def find(self, id: Any) -> Optional[T]:
        """Find by primary key; the identity map is consulted before the store."""
        try:
            return await self.context.session.get(self.model, id)
        except SQLAlchemyError as e:
            raise StorageFailure(f"Lookup of {self.model.__name__} {id!r} failed: {e}", orig=e) from e

    def add(self, entity: T) -> None:
        self.context.session.add(entity)

    def attach(self, entity: T) -> None:
        """
        Start tracking an entity as an existing, unmodified row.

        A transient instance carrying its full primary key is treated as a
        detached copy of that row; without a key it can only be inserted, so it
        becomes Added.
        """
        insp = inspect(entity)
        if insp.session is self.context.session.sync_session:
            return
        if insp.transient:
            key = insp.mapper.primary_key_from_instance(entity)
            if any(value is None for value in key):
                self.context.session.add(entity)
                return
            make_transient_to_detached(entity)
        self.context.session.add(entity)

    async def remove(self, entity: T) -> None:
        # a pending insert is simply forgotten
        if inspect(entity).pending:
            self.context.session.expunge(entity)
            return
        await self.context.session.delete(entity)

    def mark_modified(self, entity: T) -> None:
        """Flag every loaded non-key column so the whole row is written on commit."""
        insp = inspect(entity)
        key_columns = set(insp.mapper.primary_key)
        for prop in insp.mapper.column_attrs:
            if any(column in key_columns for column in prop.columns):
                continue
            if prop.key in insp.dict:
                flag_modified(entity, prop.key)


class DbContext:
    """
    Wraps one AsyncSession for the lifetime of a unit of work.

    The session's identity map is the change tracker: pending inserts, modified
    rows and deletions stay in the session until save_changes() flushes them in
    a single transaction.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self.session: AsyncSession = session_factory()
        self._sets: Dict[type, EntitySet] = {}
        self.disposed = False

    def set(self, model: Type[T]) -> EntitySet[T]:
        if model not in self._sets:
            self._sets[model] = EntitySet(self, model)
        return self._sets[model]

    def entry(self, entity: Any) -> EntityEntry:
        return EntityEntry(self.session, entity)

    def pending_changes(self) -> List[EntityEntry]:
        """Entries that the next save_changes() would write."""
        entries = [self.entry(entity) for entity in self.session.new]
        entries.extend(self.entry(entity) for entity in self.session.deleted)
        entries.extend(
            self.entry(entity)
            for entity in self.session.dirty
            if entity not in self.session.deleted
            and self.session.is_modified(entity, include_collections=False)
        )
        return entries

    @asynccontextmanager
    async def detached_reader(self) -> AsyncIterator[AsyncSession]:
        """Short-lived sibling session; everything it loads is detached on exit."""
        async with self._session_factory() as reader:
            yield reader

    async def save_changes(self) -> None:
        """
        Flush and commit all pending changes atomically.

        If the store rejects the commit (or the caller cancels it) the
        transaction is rolled back and the pending change set is put back
        exactly as it was, so the caller may fix the cause and commit again.
        """
        snapshot = self._snapshot_pending()
        try:
            await self.session.commit()
        except (SQLAlchemyError, asyncio.CancelledError) as e:
            await self.session.rollback()
            await self._restore_pending(snapshot)
            if isinstance(e, SQLAlchemyError):
                raise StorageFailure(f"Commit failed: {e}", orig=e) from e
            raise
        logger.debug(
            f"Committed {len(snapshot['new'])} added, {snapshot['dirty']} modified, "
            f"{len(snapshot['deleted'])} deleted"
        )

    async def dispose(self) -> None:
        if self.disposed:
            return
        await self.session.close()
        self.disposed = True

    def _snapshot_pending(self) -> Dict[str, Any]:
        """
        Record what rollback() would discard.

        Every tracked row keeps its committed column values plus the net
        changes on top of them; every pending insert keeps the list of key
        attributes that were still unassigned.
        """
        loaded = []
        dirty = 0
        for entity in list(self.session.identity_map.values()):
            insp = inspect(entity)
            committed = {}
            changes = {}
            for prop in insp.mapper.column_attrs:
                if prop.key not in insp.dict:
                    continue
                value = insp.dict[prop.key]
                history = insp.attrs[prop.key].history
                if history.has_changes():
                    changes[prop.key] = value
                    committed[prop.key] = history.deleted[0] if history.deleted else value
                else:
                    committed[prop.key] = value
            if changes and entity not in self.session.deleted:
                dirty += 1
            loaded.append((entity, committed, changes))
        new = []
        for entity in self.session.new:
            insp = inspect(entity)
            keys = [insp.mapper.get_property_by_column(column).key for column in insp.mapper.primary_key]
            unassigned = [key for key in keys if insp.dict.get(key) is None]
            new.append((entity, unassigned))
        return {
            "new": new,
            "deleted": list(self.session.deleted),
            "loaded": loaded,
            "dirty": dirty,
        }

    async def _restore_pending(self, snapshot: Dict[str, Any]) -> None:
        # rollback() expunges pending objects and expires persistent ones
        for entity, committed, changes in snapshot["loaded"]:
            if not inspect(entity).persistent:
                continue
            for key, value in committed.items():
                set_committed_value(entity, key, value)
            for key, value in changes.items():
                setattr(entity, key, value)
                flag_modified(entity, key)
        for entity, unassigned in snapshot["new"]:
            if not inspect(entity).transient:
                continue
            # keys generated by the aborted flush are not kept
            for key in unassigned:
                setattr(entity, key, None)
            self.session.add(entity)
        for entity in snapshot["deleted"]:
            if entity not in self.session.deleted:
                await self.session.delete(entity)
