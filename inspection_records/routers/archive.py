from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.database import get_db
from inspection_records.repositories.archive import ArchiveRepository
from inspection_records.schemas import DeleteResponse, Record
from inspection_records.services import lifecycle

router = APIRouter(prefix="/archive", tags=["archive"])


@router.get("/months", response_model=List[str])
async def list_months(db: AsyncSession = Depends(get_db)):
    return await ArchiveRepository(db).months()


@router.get("/{month}", response_model=List[Record])
async def list_month(month: str, db: AsyncSession = Depends(get_db)):
    return await ArchiveRepository(db).load_month(month)


@router.delete("/{month}/{record_id}", response_model=DeleteResponse)
async def delete_archived(month: str, record_id: str, db: AsyncSession = Depends(get_db)):
    return DeleteResponse(deleted=await lifecycle.delete_archived(db, month, record_id))
