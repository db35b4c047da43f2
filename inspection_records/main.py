import structlog
import logging
import contextlib

from fastapi import FastAPI
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from inspection_records.config import settings
from inspection_records.database import init_db, close_db
from inspection_records.cache import init_redis_pool, close_redis_pool
from inspection_records.exceptions import (
    AppError, app_error_handler, http_error_handler,
    request_validation_handler, storage_error_handler,
)
from inspection_records.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from inspection_records.routers.admin import router as admin_router
from inspection_records.routers.archive import router as archive_router
from inspection_records.routers.auth import router as auth_router
from inspection_records.routers.documents import router as documents_router
from inspection_records.routers.manager import router as manager_router
from inspection_records.routers.records import router as records_router
from inspection_records.services.scheduler import start_scheduler, stop_scheduler

# ── Structured logging setup ──────────────────────────────────────────────────
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

log = structlog.get_logger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("app.starting", env=settings.ENVIRONMENT, version=settings.APP_VERSION)
    await init_db()
    await init_redis_pool()
    start_scheduler()
    log.info("app.ready")
    yield
    log.info("app.shutting_down")
    stop_scheduler()
    await close_redis_pool()
    await close_db()
    log.info("app.stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

# ── Middleware (order matters — outermost first) ───────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# ── Exception handlers ────────────────────────────────────────────────────────
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, storage_error_handler)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(records_router)
app.include_router(archive_router)
app.include_router(documents_router)
app.include_router(manager_router)
app.include_router(auth_router)
app.include_router(admin_router)
