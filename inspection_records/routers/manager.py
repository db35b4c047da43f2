from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.cache import build_key, cache_get, cache_set, record_hit, record_miss
from inspection_records.config import settings
from inspection_records.database import get_db
from inspection_records.repositories.generation import GenerationRepository
from inspection_records.schemas import ManagerItemsResponse
from inspection_records.services.manager import list_items

router = APIRouter(prefix="/manager", tags=["manager"])


@router.get("/items", response_model=ManagerItemsResponse)
async def manager_items(
    scope: str = Query("all"),
    month: str = Query(""),
    db: AsyncSession = Depends(get_db),
):
    generation = await GenerationRepository(db).current()
    cache_key = build_key("manager", generation, scope.strip(), month.strip())
    cached = await cache_get(cache_key)
    if cached is not None:
        await record_hit()
        return ManagerItemsResponse(**cached)

    await record_miss()
    result = ManagerItemsResponse(items=await list_items(db, scope, month))
    await cache_set(cache_key, result.model_dump(), settings.CACHE_TTL_LISTING)
    return result
