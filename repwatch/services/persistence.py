from typing import Iterable, List, Optional, Type

from pydantic import BaseModel
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from repwatch.db.models import Base, RepresentativeNetwork, RepresentativeTelemetry


class TelemetryRepository:
    """
    Append-only access to the telemetry tables for one session.
    Each insert_many call commits its own batch.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_many(self, model: Type[Base], records: Iterable[BaseModel]) -> int:
        rows = [record.model_dump() for record in records]
        if not rows:
            return 0
        await self.session.execute(insert(model), rows)
        await self.session.commit()
        return len(rows)

    async def insert_telemetry(self, records: Iterable[BaseModel]) -> int:
        return await self.insert_many(RepresentativeTelemetry, records)

    async def insert_network_info(self, records: Iterable[BaseModel]) -> int:
        return await self.insert_many(RepresentativeNetwork, records)

    async def latest_network_info(self, account: str, address: str) -> Optional[RepresentativeNetwork]:
        result = await self.session.execute(
            select(RepresentativeNetwork)
            .where(
                RepresentativeNetwork.account == account,
                RepresentativeNetwork.address == address,
            )
            .order_by(RepresentativeNetwork.timestamp.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def telemetry_for_account(self, account: str, limit: int = 10) -> List[RepresentativeTelemetry]:
        result = await self.session.execute(
            select(RepresentativeTelemetry)
            .where(RepresentativeTelemetry.account == account)
            .order_by(RepresentativeTelemetry.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
