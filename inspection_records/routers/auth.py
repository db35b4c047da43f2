from __future__ import annotations
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from inspection_records.auth import verify_pin
from inspection_records.exceptions import AppError
from inspection_records.schemas import PinRequest, PinResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/pin", response_model=PinResponse, response_model_exclude_none=True)
async def check_pin(body: PinRequest):
    try:
        verify_pin(body.pin)
    except AppError as exc:
        # the front-end reads {ok, message}, not the generic error body
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "message": exc.detail})
    return PinResponse(ok=True)
