"""
Folding the renewal log back into current truth.

``pick_latest`` is the single rule every caller goes through: among the
RENEWED events for an entity key, the one with the greatest ``changedAt``
string wins, and on equal timestamps the later entry in log order wins.
Per-entity lookup, month export and the data-manager views all call it,
so they agree for the same log state.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.exceptions import ValidationFailed
from inspection_records.repositories.archive import ArchiveRepository
from inspection_records.repositories.history import RENEWED, HistoryRepository
from inspection_records.services.identity import normalize_key, resolve_entity_key

log = structlog.get_logger(__name__)


def _is_renewed(event: Dict[str, Any]) -> bool:
    return str(event.get("action") or "").upper() == RENEWED


def pick_latest(events: Iterable[Dict[str, Any]], entity_key: Any) -> Optional[Dict[str, Any]]:
    ek = normalize_key(entity_key)
    if not ek:
        return None
    renewed = [
        e for e in events
        if _is_renewed(e) and normalize_key(e.get("entityKey")) == ek
    ]
    if not renewed:
        return None
    # list.sort is stable, so equal timestamps keep log order
    renewed.sort(key=lambda e: str(e.get("changedAt") or ""))
    return resolve_entity_key(renewed[-1].get("data") or {})


def project_renewed(events: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Every RENEWED snapshot, newest first, stamped with its event metadata."""
    projected = []
    for event in events:
        if not _is_renewed(event):
            continue
        rec = resolve_entity_key(event.get("data") or {})
        projected.append({
            **rec,
            "entityKey": event.get("entityKey") or rec.get("entityKey"),
            "renewedAt": event.get("changedAt") or rec.get("renewedAt") or "",
            "source": event.get("source") or "Renewed",
        })
    projected.sort(key=lambda r: str(r.get("renewedAt") or ""), reverse=True)
    return projected


def substitute_latest(
    records: Iterable[Dict[str, Any]], events: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    out = []
    for record in records:
        record = resolve_entity_key(record)
        out.append(pick_latest(events, record.get("entityKey")) or record)
    return out


async def latest_renewed(db: AsyncSession, entity_key: Any) -> Optional[Dict[str, Any]]:
    ek = normalize_key(entity_key)
    if not ek:
        return None
    events = await HistoryRepository(db).list_by_entity(ek, RENEWED)
    return pick_latest(events, ek)


async def list_all_renewed(db: AsyncSession) -> List[Dict[str, Any]]:
    return project_renewed(await HistoryRepository(db).list_by_action(RENEWED))


async def export_month(db: AsyncSession, month: Any) -> List[Dict[str, Any]]:
    """Archived records of ``month`` with each replaced by its latest renewal, if any."""
    month = normalize_key(month)
    if not month:
        raise ValidationFailed("Missing month")
    records = await ArchiveRepository(db).load_month(month)
    events = await HistoryRepository(db).list_by_action(RENEWED)
    exported = substitute_latest(records, events)
    log.info("export.built", month=month, records=len(exported))
    return exported
