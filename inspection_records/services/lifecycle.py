from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.adapters.legacy_fields import pick_record_fields
from inspection_records.database import commit_or_fail
from inspection_records.exceptions import ValidationFailed
from inspection_records.repositories.archive import ArchiveRepository
from inspection_records.repositories.generation import GenerationRepository
from inspection_records.repositories.history import PREVIOUS, RENEWED, HistoryRepository
from inspection_records.repositories.records import CurrentRecordRepository
from inspection_records.services.clock import month_key, new_record_id, now_iso, to_iso
from inspection_records.services.identity import normalize_key, resolve_entity_key

log = structlog.get_logger(__name__)


async def commit_write(db: AsyncSession, operation: str) -> None:
    """Commit a mutation together with a bump of the store generation."""
    await GenerationRepository(db).bump()
    await commit_or_fail(db, operation)


async def add_record(db: AsyncSession, body: Dict[str, Any]) -> Dict[str, Any]:
    record = {
        "id": new_record_id(),
        "createdAt": now_iso(),
        **pick_record_fields(body),
        "entityKey": (body or {}).get("entityKey"),
    }
    record = resolve_entity_key(record)
    await CurrentRecordRepository(db).add(record)
    await commit_write(db, "Add record")
    log.info("record.added", id=record["id"], entity_key=record["entityKey"])
    return record


async def delete_current(db: AsyncSession, record_id: Any) -> int:
    deleted = await CurrentRecordRepository(db).delete_by_id(record_id)
    await commit_write(db, "Delete")
    return deleted


async def delete_archived(db: AsyncSession, month: str, record_id: Any) -> int:
    deleted = await ArchiveRepository(db).delete(normalize_key(month), record_id)
    await commit_write(db, "Delete")
    return deleted


async def find_record_by_id(db: AsyncSession, record_id: Any) -> Optional[Dict[str, Any]]:
    """Current store first, then every archive month."""
    record = await CurrentRecordRepository(db).get_by_id(record_id)
    if record is None:
        record = await ArchiveRepository(db).find_by_id(record_id)
    return record


async def close_month(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Move every current record into this month's archive bucket.

    An empty current store is a soft failure (``success: False``), not an
    error. The move is a single commit, so the current store and the archive
    never both hold a record.
    """
    current = CurrentRecordRepository(db)
    keyed = await current.load_keyed()
    records = [record for _, record in keyed]
    if not records:
        log.info("close_month.empty")
        return {"success": False, "message": "No records"}

    month = month_key(now)
    await ArchiveRepository(db).add_many(month, records)
    # only the rows read above; anything added meanwhile stays current
    await current.delete_pks([pk for pk, _ in keyed])
    await commit_write(db, "Close month")

    log.info("close_month.done", month=month, archived=len(records))
    return {"success": True, "month": month, "archivedCount": len(records)}


def build_renewed_record(
    entity_key: str, updated_record: Dict[str, Any], now: str
) -> Dict[str, Any]:
    # Only allow-listed inspection fields survive into the renewed record.
    record = {
        "id": new_record_id(),
        "entityKey": entity_key,
        **pick_record_fields(updated_record),
        "teamLeader": (updated_record or {}).get("teamLeader") or "",
        "renewedAt": now,
        "createdAt": now,
    }
    return resolve_entity_key(record)


async def renew(
    db: AsyncSession,
    old_record: Optional[Dict[str, Any]],
    updated_record: Optional[Dict[str, Any]],
    entity_key: Any = None,
    source: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Supersede ``old_record`` with ``updated_record``.

    Appends a PREVIOUS event with the old snapshot and a RENEWED event with
    a freshly built record, both stamped with the same instant and written
    in one commit. Returns the new record.
    """
    old_record = resolve_entity_key(old_record)
    updated_record = resolve_entity_key(updated_record)

    ek = (
        normalize_key(entity_key)
        or normalize_key((old_record or {}).get("entityKey"))
        or normalize_key((updated_record or {}).get("entityKey"))
    )
    if not ek or old_record is None or updated_record is None:
        raise ValidationFailed(
            "Missing payload (entityKey/oldRecord/updatedRecord)",
            {"entityKey": ek or None},
        )

    changed_at = to_iso(now) if now else now_iso()
    new_record = build_renewed_record(ek, updated_record, changed_at)

    await HistoryRepository(db).append([
        {
            "entityKey": ek,
            "source": source or "Unknown",
            "changedAt": changed_at,
            "action": PREVIOUS,
            "data": old_record,
        },
        {
            "entityKey": ek,
            "source": "Renewed",
            "changedAt": changed_at,
            "action": RENEWED,
            "data": new_record,
        },
    ])
    await commit_write(db, "Renew")

    log.info("renew.appended", entity_key=ek, new_id=new_record["id"], source=source or "Unknown")
    return new_record


async def remove_renewed(db: AsyncSession, record_id: Any) -> int:
    deleted = await HistoryRepository(db).remove_by_record_id(record_id)
    await commit_write(db, "Delete renewed")
    log.info("history.removed", id=normalize_key(record_id), deleted=deleted)
    return deleted
