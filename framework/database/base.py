from abc import ABC, abstractmethod


class BaseDatabaseDriver(ABC):
    """Owns an engine and hands out sessions bound to it."""

    @abstractmethod
    async def connect(self):
        pass

    @abstractmethod
    async def disconnect(self):
        pass

    @property
    @abstractmethod
    def session_factory(self):
        """Callable returning a new session."""
