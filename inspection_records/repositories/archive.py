from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.models import ArchivedRecord
from inspection_records.services.identity import normalize_key, resolve_entity_key


class ArchiveRepository:
    """Closed-out records bucketed by ``YYYY-MM``."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def months(self) -> List[str]:
        # first-archived order, like the keys of the month map
        rows = await self.db.execute(
            select(ArchivedRecord.month, func.min(ArchivedRecord.pk).label("first_pk"))
            .group_by(ArchivedRecord.month)
            .order_by("first_pk")
        )
        return [r.month for r in rows.all()]

    async def load_month(self, month: str) -> List[Dict[str, Any]]:
        rows = (
            await self.db.execute(
                select(ArchivedRecord)
                .where(ArchivedRecord.month == month)
                .order_by(ArchivedRecord.pk)
            )
        ).scalars().all()
        return [resolve_entity_key(row.payload) for row in rows]

    async def load(self) -> Dict[str, List[Dict[str, Any]]]:
        archive: Dict[str, List[Dict[str, Any]]] = {}
        rows = (
            await self.db.execute(select(ArchivedRecord).order_by(ArchivedRecord.pk))
        ).scalars().all()
        for row in rows:
            archive.setdefault(row.month, []).append(resolve_entity_key(row.payload))
        return archive

    async def add_many(self, month: str, records: List[Dict[str, Any]]) -> None:
        for record in records:
            record = resolve_entity_key(record)
            self.db.add(
                ArchivedRecord(
                    month=month,
                    record_id=normalize_key(record.get("id")),
                    entity_key=normalize_key(record["entityKey"]),
                    payload=record,
                )
            )
        await self.db.flush()

    async def find_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        row = (
            await self.db.execute(
                select(ArchivedRecord)
                .where(ArchivedRecord.record_id == normalize_key(record_id))
                .order_by(ArchivedRecord.pk)
                .limit(1)
            )
        ).scalars().first()
        return resolve_entity_key(row.payload) if row else None

    async def delete(self, month: str, record_id: Any) -> int:
        result = await self.db.execute(
            delete(ArchivedRecord).where(
                ArchivedRecord.month == month,
                ArchivedRecord.record_id == normalize_key(record_id),
            )
        )
        return result.rowcount or 0

    async def count(self) -> int:
        return (await self.db.execute(select(func.count(ArchivedRecord.pk)))).scalar_one()
