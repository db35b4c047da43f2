from __future__ import annotations
import hmac
from typing import Any

from fastapi import Security
from fastapi.security import APIKeyHeader

from inspection_records.config import settings
from inspection_records.exceptions import AppError, ValidationFailed


class AuthenticationError(AppError):
    status_code = 401
    error_code = "UNAUTHORIZED"


_pin_header = APIKeyHeader(name="X-Office-PIN", auto_error=False)


def _pin_matches(candidate: str) -> bool:
    return hmac.compare_digest(candidate.encode(), settings.PIN.encode())


def verify_pin(pin: Any) -> None:
    """Raise unless ``pin`` matches the office PIN."""
    candidate = str(pin if pin is not None else "").strip()
    if not candidate:
        raise ValidationFailed("Missing PIN")
    if not _pin_matches(candidate):
        raise AuthenticationError("Incorrect PIN")


async def require_pin(pin: str | None = Security(_pin_header)) -> None:
    """Dependency for admin endpoints: the office PIN in ``X-Office-PIN``."""
    if not pin or not _pin_matches(pin.strip()):
        raise AuthenticationError("Invalid or missing office PIN")
