from __future__ import annotations
from typing import Any, Dict, Optional
import structlog
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

log = structlog.get_logger(__name__)


# ── Typed domain exceptions ───────────────────────────────────────────────────

class AppError(Exception):
    """Base for all application-level errors."""
    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, detail: str, context: Optional[Dict[str, Any]] = None):
        self.detail = detail
        self.context = context or {}
        super().__init__(detail)


class ValidationFailed(AppError):
    status_code = 400
    error_code = "VALIDATION_FAILED"


class NotFoundError(AppError):
    status_code = 404
    error_code = "NOT_FOUND"


class StorageError(AppError):
    status_code = 500
    error_code = "STORAGE_FAILED"


class CacheError(AppError):
    status_code = 503
    error_code = "CACHE_UNAVAILABLE"


# ── FastAPI exception handlers ────────────────────────────────────────────────

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.error_code,
            "message": exc.detail,
            "context": exc.context,
        },
    )


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": "HTTP_ERROR",
            "message": exc.detail,
        },
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": ValidationFailed.error_code,
            "message": "Malformed request",
            "context": {"errors": jsonable_encoder(exc.errors())},
        },
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.error("storage.failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=StorageError.status_code,
        content={
            "success": False,
            "error": StorageError.error_code,
            "message": "Storage operation failed",
        },
    )
