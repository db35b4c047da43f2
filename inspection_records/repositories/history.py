from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.models import HistoryEvent
from inspection_records.services.identity import normalize_key

PREVIOUS = "PREVIOUS"
RENEWED = "RENEWED"


def event_to_dict(row: HistoryEvent) -> Dict[str, Any]:
    return {
        "entityKey": row.entity_key,
        "source": row.source,
        "changedAt": row.changed_at,
        "action": row.action,
        "data": row.data,
    }


class HistoryRepository:
    """
    Append-only renewal log.

    Events come back in append order (``seq``); nothing here sorts by
    ``changedAt``. Callers that need the newest event sort for themselves.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, events: List[Dict[str, Any]]) -> None:
        for event in events:
            data = event.get("data") or {}
            self.db.add(
                HistoryEvent(
                    entity_key=normalize_key(event.get("entityKey")),
                    source=event.get("source") or "Unknown",
                    changed_at=event["changedAt"],
                    action=str(event["action"]).upper(),
                    record_id=normalize_key(data.get("id")) or None,
                    data=data,
                )
            )
        await self.db.flush()

    async def load(self) -> List[Dict[str, Any]]:
        rows = (
            await self.db.execute(select(HistoryEvent).order_by(HistoryEvent.seq))
        ).scalars().all()
        return [event_to_dict(r) for r in rows]

    async def list_by_entity(
        self, entity_key: Any, action: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        q = select(HistoryEvent).where(HistoryEvent.entity_key == normalize_key(entity_key))
        if action:
            q = q.where(HistoryEvent.action == action.upper())
        rows = (await self.db.execute(q.order_by(HistoryEvent.seq))).scalars().all()
        return [event_to_dict(r) for r in rows]

    async def list_by_action(self, action: str) -> List[Dict[str, Any]]:
        rows = (
            await self.db.execute(
                select(HistoryEvent)
                .where(HistoryEvent.action == action.upper())
                .order_by(HistoryEvent.seq)
            )
        ).scalars().all()
        return [event_to_dict(r) for r in rows]

    async def remove_by_record_id(self, record_id: Any) -> int:
        """Drop RENEWED events whose snapshot id matches; PREVIOUS events stay."""
        result = await self.db.execute(
            delete(HistoryEvent).where(
                HistoryEvent.action == RENEWED,
                HistoryEvent.record_id == normalize_key(record_id),
            )
        )
        return result.rowcount or 0

    async def count(self, action: Optional[str] = None) -> int:
        q = select(func.count(HistoryEvent.seq))
        if action:
            q = q.where(HistoryEvent.action == action.upper())
        return (await self.db.execute(q)).scalar_one()
