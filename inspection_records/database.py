from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase
import structlog
from inspection_records.config import settings
from inspection_records.exceptions import StorageError

log = structlog.get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"echo": False}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,      # detect stale connections
        "pool_recycle": 3600,
        "echo": False,
    }


engine = create_async_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("database.initialized")


async def close_db() -> None:
    await engine.dispose()
    log.info("database.closed")


async def commit_or_fail(db: AsyncSession, operation: str) -> None:
    """Commit the unit of work, or roll it back and raise ``StorageError``."""
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log.error("storage.commit.failed", operation=operation, error=str(exc))
        raise StorageError(f"{operation} failed", {"operation": operation}) from exc
