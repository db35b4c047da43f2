from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.cache import build_key, cache_get, cache_set, record_hit, record_miss
from inspection_records.config import settings
from inspection_records.database import get_db
from inspection_records.exceptions import NotFoundError
from inspection_records.repositories.generation import GenerationRepository
from inspection_records.repositories.records import CurrentRecordRepository
from inspection_records.schemas import (
    CloseMonthResponse, DeleteResponse, Record, RecordListResponse,
    RecordResponse, RenewedRecordResponse, RenewRequest, RenewResponse,
)
from inspection_records.services import lifecycle, reconciler

router = APIRouter(prefix="/records", tags=["records"])


@router.get("", response_model=List[Record])
async def list_current(db: AsyncSession = Depends(get_db)):
    return await CurrentRecordRepository(db).load()


@router.post("", response_model=RecordResponse)
async def add_record(body: Optional[Dict[str, Any]] = Body(None), db: AsyncSession = Depends(get_db)):
    return RecordResponse(data=await lifecycle.add_record(db, body or {}))


@router.post("/close-month", response_model=CloseMonthResponse, response_model_exclude_none=True)
async def close_month(db: AsyncSession = Depends(get_db)):
    """Archive every current record under this month. Empty store → success=false."""
    return CloseMonthResponse(**await lifecycle.close_month(db))


@router.post("/renew", response_model=RenewResponse)
async def renew(body: RenewRequest, db: AsyncSession = Depends(get_db)):
    new_record = await lifecycle.renew(
        db,
        old_record=body.oldRecord,
        updated_record=body.updatedRecord,
        entity_key=body.entityKey,
        source=body.source,
    )
    return RenewResponse(newRecord=new_record)


@router.get("/renewed", response_model=RecordListResponse)
async def list_renewed(db: AsyncSession = Depends(get_db)):
    # generation is read before the listing, so an entry is never older than its key
    generation = await GenerationRepository(db).current()
    cache_key = build_key("renewed", generation)
    cached = await cache_get(cache_key)
    if cached is not None:
        await record_hit()
        return RecordListResponse(**cached)

    await record_miss()
    result = RecordListResponse(records=await reconciler.list_all_renewed(db))
    await cache_set(cache_key, result.model_dump(), settings.CACHE_TTL_LISTING)
    return result


@router.get("/renewed/{entity_key:path}", response_model=RenewedRecordResponse)
async def latest_renewed(entity_key: str, db: AsyncSession = Depends(get_db)):
    return RenewedRecordResponse(record=await reconciler.latest_renewed(db, entity_key))


@router.delete("/renewed/{record_id}", response_model=DeleteResponse)
async def delete_renewed(record_id: str, db: AsyncSession = Depends(get_db)):
    return DeleteResponse(deleted=await lifecycle.remove_renewed(db, record_id))


@router.get("/export", response_model=RecordListResponse)
async def export_month(month: str = Query(""), db: AsyncSession = Depends(get_db)):
    """Archived month with each record replaced by its latest renewal."""
    generation = await GenerationRepository(db).current()
    cache_key = build_key("export", generation, month.strip())
    cached = await cache_get(cache_key)
    if cached is not None:
        await record_hit()
        return RecordListResponse(**cached)

    await record_miss()
    result = RecordListResponse(records=await reconciler.export_month(db, month))
    await cache_set(cache_key, result.model_dump(), settings.CACHE_TTL_LISTING)
    return result


@router.get("/{record_id}", response_model=RecordResponse)
async def get_record(record_id: str, db: AsyncSession = Depends(get_db)):
    record = await lifecycle.find_record_by_id(db, record_id)
    if record is None:
        raise NotFoundError("Record not found", {"id": record_id})
    return RecordResponse(data=record)


@router.delete("/{record_id}", response_model=DeleteResponse)
async def delete_record(record_id: str, db: AsyncSession = Depends(get_db)):
    return DeleteResponse(deleted=await lifecycle.delete_current(db, record_id))
