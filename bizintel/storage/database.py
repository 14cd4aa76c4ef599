"""
SQL backend - collections as rows in store_records.

mutate() rewrites the whole collection inside one transaction. Collections
are small (tens of companies per search), so this keeps the repository logic
identical across backends.
"""
import logging

from sqlalchemy import delete, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizintel.models.store_record import StoreRecord
from bizintel.storage.base import Mutation, Records, StorageBackend

logger = logging.getLogger(__name__)


class DatabaseBackend(StorageBackend):
    name = "database"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def load(self, collection: str) -> Records:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StoreRecord.data)
                .where(StoreRecord.collection == collection)
                .order_by(StoreRecord.position)
            )
            return [dict(row) for row in result.scalars().all()]

    async def mutate(self, collection: str, fn: Mutation):
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(StoreRecord)
                    .where(StoreRecord.collection == collection)
                    .order_by(StoreRecord.position)
                    .with_for_update()
                )
                records = [dict(row.data) for row in result.scalars().all()]
                new_records, outcome = fn(records)

                await session.execute(
                    delete(StoreRecord).where(StoreRecord.collection == collection)
                )
                session.add_all([
                    StoreRecord(collection=collection, position=i, data=record)
                    for i, record in enumerate(new_records)
                ])
            return outcome

    async def ping(self) -> bool:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
