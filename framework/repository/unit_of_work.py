"""
Unit of Work: owns one DbContext and the transaction boundary.
"""

from typing import Dict, Type

from loguru import logger
from framework.database.context import DbContext
from .base import BaseRepository


class UnitOfWork:
    """Shares one context between repositories; commit() writes their changes atomically."""

    def __init__(self, context: DbContext):
        self._context = context
        self._repositories: Dict[type, BaseRepository] = {}

    @classmethod
    def create(cls, session_factory) -> "UnitOfWork":
        """Create a UnitOfWork with a fresh context from a session factory."""
        return cls(DbContext(session_factory))

    @property
    def context(self) -> DbContext:
        return self._context

    def get_repository(self, model_class: Type) -> BaseRepository:
        """Get or create the generic repository for a model (cached)."""
        if model_class not in self._repositories:
            self._repositories[model_class] = BaseRepository(self, model_class)
        return self._repositories[model_class]

    async def commit(self) -> None:
        """Commit all pending changes; raises StorageFailure and keeps them pending on rejection."""
        await self._context.save_changes()

    async def dispose(self) -> None:
        """Release the context; safe to call more than once."""
        await self._context.dispose()
        logger.debug("Unit of work disposed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # never commits implicitly
        await self.dispose()
