from __future__ import annotations
from fastapi import APIRouter, Depends
import sqlalchemy
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.auth import require_pin
from inspection_records.cache import KEY_PATTERN, invalidate_pattern, get_cache_stats, ping_redis
from inspection_records.config import settings
from inspection_records.database import engine, get_db
from inspection_records.repositories.archive import ArchiveRepository
from inspection_records.repositories.documents import DocumentRepository
from inspection_records.repositories.history import RENEWED, HistoryRepository
from inspection_records.repositories.records import CurrentRecordRepository
from inspection_records.schemas import HealthResponse, StatsResponse
from inspection_records.services.scheduler import scheduler_state

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse)
async def health():
    """Unauthenticated, for load balancer probes."""
    redis_ok = await ping_redis()
    try:
        async with engine.connect() as conn:
            await conn.execute(sqlalchemy.text("SELECT 1"))
        db_status = "ok"
    except sqlalchemy.exc.SQLAlchemyError:
        db_status = "error"

    return HealthResponse(
        status="ok" if (redis_ok and db_status == "ok") else "degraded",
        database=db_status,
        redis="ok" if redis_ok else "error",
        scheduler=scheduler_state(),
        version=settings.APP_VERSION,
    )


@router.get("/stats", response_model=StatsResponse, dependencies=[Depends(require_pin)])
async def stats(db: AsyncSession = Depends(get_db)):
    archive = ArchiveRepository(db)
    history = HistoryRepository(db)
    cache = await get_cache_stats()
    return StatsResponse(
        current=await CurrentRecordRepository(db).count(),
        archived=await archive.count(),
        archive_months=len(await archive.months()),
        documents=await DocumentRepository(db).count(),
        history_events=await history.count(),
        renewed_events=await history.count(RENEWED),
        cache_hits=cache["hits"],
        cache_misses=cache["misses"],
        hit_rate=cache["hit_rate"],
    )


@router.delete("/cache", status_code=204, dependencies=[Depends(require_pin)])
async def bust_cache():
    await invalidate_pattern(KEY_PATTERN)
