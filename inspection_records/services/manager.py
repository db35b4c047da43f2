from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.exceptions import ValidationFailed
from inspection_records.repositories.archive import ArchiveRepository
from inspection_records.repositories.documents import DocumentRepository
from inspection_records.repositories.history import RENEWED, HistoryRepository
from inspection_records.repositories.records import CurrentRecordRepository
from inspection_records.services.identity import normalize_key, resolve_entity_key

SCOPES = {"all", "current", "archive", "documents", "renewed"}


def _item(kind: str, id: Any, source: str, data: Dict[str, Any], *,
          created_at: Any = "", changed_at: Any = "", entity_key: Any = "",
          month: str = "") -> Dict[str, Any]:
    return {
        "kind": kind,
        "id": id,
        "source": source,
        "createdAt": str(created_at or ""),
        "changedAt": str(changed_at or ""),
        "entityKey": str(entity_key or ""),
        "month": month or "",
        "data": data or {},
    }


async def list_items(db: AsyncSession, scope: str = "all", month: str = "") -> List[Dict[str, Any]]:
    """
    Flat view over every collection for the data-manager screen, newest first
    by ``changedAt`` (renewals) or ``createdAt`` (everything else).
    """
    scope = normalize_key(scope) or "all"
    month = normalize_key(month)
    if scope not in SCOPES:
        raise ValidationFailed(f"Unknown scope: {scope}", {"allowed": sorted(SCOPES)})

    items: List[Dict[str, Any]] = []

    if scope in ("all", "current"):
        for r in await CurrentRecordRepository(db).load():
            items.append(_item("current", r.get("id"), "Current", r,
                               created_at=r.get("createdAt"), entity_key=r.get("entityKey")))

    if scope in ("all", "archive"):
        repo = ArchiveRepository(db)
        months = [month] if month else await repo.months()
        for m in months:
            for r in await repo.load_month(m):
                items.append(_item("archive", r.get("id"), f"Archive:{m}", r,
                                   created_at=r.get("createdAt"),
                                   entity_key=r.get("entityKey"), month=m))

    if scope in ("all", "documents"):
        for d in await DocumentRepository(db).load():
            items.append(_item("documents", d.get("id"), "Documents", d,
                               created_at=d.get("createdAt")))

    if scope in ("all", "renewed"):
        for event in await HistoryRepository(db).list_by_action(RENEWED):
            rec = resolve_entity_key(event.get("data") or {})
            items.append(_item("renewed", rec.get("id"), "Renewed", rec,
                               changed_at=event.get("changedAt"),
                               entity_key=event.get("entityKey") or rec.get("entityKey")))

    items.sort(key=lambda i: str(i["changedAt"] or i["createdAt"]), reverse=True)
    return items
