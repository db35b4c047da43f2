from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.models import StoreGeneration

_ROW_ID = 1


class GenerationRepository:
    """
    Write counter shared by every collection.

    Mutations call ``bump`` inside their own transaction, so a committed
    write and its new generation become visible together. Readers fetch
    ``current`` before loading data and use it in their cache key.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def current(self) -> int:
        value = (
            await self.db.execute(
                select(StoreGeneration.value).where(StoreGeneration.id == _ROW_ID)
            )
        ).scalar_one_or_none()
        return value or 0

    async def bump(self) -> None:
        result = await self.db.execute(
            update(StoreGeneration)
            .where(StoreGeneration.id == _ROW_ID)
            .values(value=StoreGeneration.value + 1)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            self.db.add(StoreGeneration(id=_ROW_ID, value=1))
        await self.db.flush()
