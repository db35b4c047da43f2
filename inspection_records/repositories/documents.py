from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.models import Document
from inspection_records.services.identity import normalize_key


class DocumentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self) -> List[Dict[str, Any]]:
        rows = (await self.db.execute(select(Document).order_by(Document.pk))).scalars().all()
        return [row.payload for row in rows]

    async def add(self, document: Dict[str, Any]) -> None:
        self.db.add(Document(record_id=normalize_key(document.get("id")), payload=document))
        await self.db.flush()

    async def _row(self, doc_id: Any) -> Optional[Document]:
        return (
            await self.db.execute(
                select(Document)
                .where(Document.record_id == normalize_key(doc_id))
                .order_by(Document.pk)
                .limit(1)
            )
        ).scalars().first()

    async def get_by_id(self, doc_id: Any) -> Optional[Dict[str, Any]]:
        row = await self._row(doc_id)
        return row.payload if row else None

    async def replace(self, doc_id: Any, document: Dict[str, Any]) -> bool:
        row = await self._row(doc_id)
        if row is None:
            return False
        # assign a new dict so the JSON column registers the change
        row.payload = dict(document)
        await self.db.flush()
        return True

    async def delete_by_id(self, doc_id: Any) -> int:
        result = await self.db.execute(
            delete(Document).where(Document.record_id == normalize_key(doc_id))
        )
        return result.rowcount or 0

    async def count(self) -> int:
        return (await self.db.execute(select(func.count(Document.pk)))).scalar_one()
