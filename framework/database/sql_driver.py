from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from .base import BaseDatabaseDriver


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    """
    Session factory used by every DbContext.

    Pending changes stay in the session until commit (no autoflush), and
    committed objects keep their loaded state (no expire on commit).
    """
    return sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


class SQLDriver(BaseDatabaseDriver):
    def __init__(self, url: str, echo: bool = False):
        self.engine = create_async_engine(url, echo=echo, future=True)
        self._session_factory = create_session_factory(self.engine)

    @property
    def session_factory(self) -> sessionmaker:
        return self._session_factory

    async def connect(self):
        """Check the database is reachable."""
        from sqlalchemy import text
        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self):
        """Dispose the connection pool."""
        await self.engine.dispose()
