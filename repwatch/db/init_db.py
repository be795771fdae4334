from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from repwatch.core import database
from repwatch.db.models import Base

async def init_db(engine: Optional[AsyncEngine] = None):
    """Creates missing tables. Existing tables and rows are left alone."""
    engine = engine or database.db_manager.engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
