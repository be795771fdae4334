from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from repwatch.core.config import get_settings

class Database:
    """
    Owns the async engine and session factory.

    Pass `url`/`echo` or a ready `engine`; otherwise DATABASE_URL and
    DATABASE_ECHO are read from settings when the engine is first needed,
    so nothing touches the event loop or the environment at import time.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None, engine: Optional[AsyncEngine] = None):
        self._url = url
        self._echo = echo
        self._engine = engine
        self._session_maker = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            settings = get_settings()
            url = self._url or settings.DATABASE_URL
            echo = settings.DATABASE_ECHO if self._echo is None else self._echo
            self._engine = create_async_engine(url, echo=echo)
        return self._engine

    @property
    def session_maker(self):
        if self._session_maker is None:
            self._session_maker = sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_maker

    async def dispose(self):
        if self._engine is not None:
            await self._engine.dispose()

db_manager = Database()

async def get_db():
    async with db_manager.session_maker() as session:
        yield session

# Helper for non-dependency contexts (like the import job)
def AsyncSessionLocal():
    return db_manager.session_maker()
