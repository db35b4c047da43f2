from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.models import CurrentRecord
from inspection_records.services.identity import normalize_key, resolve_entity_key


class CurrentRecordRepository:
    """The active, not-yet-archived records, in intake order."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self) -> List[Dict[str, Any]]:
        rows = (
            await self.db.execute(select(CurrentRecord).order_by(CurrentRecord.pk))
        ).scalars().all()
        return [resolve_entity_key(row.payload) for row in rows]

    async def add(self, record: Dict[str, Any]) -> None:
        record = resolve_entity_key(record)
        self.db.add(
            CurrentRecord(
                record_id=normalize_key(record.get("id")),
                entity_key=normalize_key(record["entityKey"]),
                payload=record,
            )
        )
        await self.db.flush()

    async def get_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        row = (
            await self.db.execute(
                select(CurrentRecord)
                .where(CurrentRecord.record_id == normalize_key(record_id))
                .order_by(CurrentRecord.pk)
                .limit(1)
            )
        ).scalars().first()
        return resolve_entity_key(row.payload) if row else None

    async def delete_by_id(self, record_id: Any) -> int:
        result = await self.db.execute(
            delete(CurrentRecord).where(CurrentRecord.record_id == normalize_key(record_id))
        )
        return result.rowcount or 0

    async def load_keyed(self) -> List[Tuple[int, Dict[str, Any]]]:
        """Like ``load``, paired with each row's surrogate key."""
        rows = (
            await self.db.execute(select(CurrentRecord).order_by(CurrentRecord.pk))
        ).scalars().all()
        return [(row.pk, resolve_entity_key(row.payload)) for row in rows]

    async def delete_pks(self, pks: List[int]) -> int:
        if not pks:
            return 0
        result = await self.db.execute(
            delete(CurrentRecord)
            .where(CurrentRecord.pk.in_(pks))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def count(self) -> int:
        return (await self.db.execute(select(func.count(CurrentRecord.pk)))).scalar_one()
