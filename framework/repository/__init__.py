"""
Repository pattern: data access abstraction, decouples service layer from database session.
"""

from .base import BaseRepository, IRepository
from .pagination import PaginatedList
from .query import QuerySpec
from .unit_of_work import UnitOfWork

__all__ = ["BaseRepository", "IRepository", "PaginatedList", "QuerySpec", "UnitOfWork"]
