"""
Data access errors raised by the repository layer.
"""

from typing import Optional


class DataAccessError(Exception):
    """Base class for data access errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StorageFailure(DataAccessError):
    """The store rejected a query or a commit (connectivity, constraint, conflict)."""

    def __init__(self, message: str, orig: Optional[BaseException] = None):
        super().__init__(message)
        self.orig = orig


class InvalidIncludeError(StorageFailure):
    """An include path names a navigation the entity does not have."""
