"""
Change-tracking states of entities held by a DbContext.
"""

from enum import Enum
from typing import Any

from sqlalchemy import inspect
from sqlmodel.ext.asyncio.session import AsyncSession


class EntityState(str, Enum):
    """Tracking state of a single entity."""
    DETACHED = "DETACHED"
    UNMODIFIED = "UNMODIFIED"
    MODIFIED = "MODIFIED"
    ADDED = "ADDED"
    DELETED = "DELETED"


class EntityEntry:
    """View of one entity's tracking state inside a session."""

    def __init__(self, session: AsyncSession, entity: Any):
        self._session = session
        self.entity = entity

    def __repr__(self) -> str:
        return f"EntityEntry[{type(self.entity).__name__}, {self.state.value}]"

    @property
    def state(self) -> EntityState:
        """
        Derive the state from the mapper's instance state.

        Transient and detached instances are not tracked; persistent ones are
        Deleted when marked for removal, Modified when a column has net changes.
        """
        insp = inspect(self.entity)
        if insp.session is not self._session.sync_session:
            return EntityState.DETACHED
        if insp.pending:
            return EntityState.ADDED
        if self.entity in self._session.deleted:
            return EntityState.DELETED
        if not insp.persistent:
            return EntityState.DETACHED
        if self._session.is_modified(self.entity, include_collections=False):
            return EntityState.MODIFIED
        return EntityState.UNMODIFIED

    @property
    def is_tracked(self) -> bool:
        return self.state is not EntityState.DETACHED
