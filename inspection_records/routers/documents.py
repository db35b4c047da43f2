from __future__ import annotations
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.database import get_db
from inspection_records.repositories.documents import DocumentRepository
from inspection_records.schemas import DeleteResponse, Record, RecordResponse
from inspection_records.services import documents

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=List[Record])
async def list_documents(db: AsyncSession = Depends(get_db)):
    return await DocumentRepository(db).load()


@router.post("", response_model=RecordResponse)
async def add_document(body: Optional[Dict[str, Any]] = Body(None), db: AsyncSession = Depends(get_db)):
    return RecordResponse(data=await documents.add_document(db, body or {}))


@router.put("/{doc_id}", response_model=RecordResponse)
async def update_document(
    doc_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    return RecordResponse(data=await documents.update_document(db, doc_id, body or {}))


@router.delete("/{doc_id}", response_model=DeleteResponse)
async def delete_document(doc_id: str, db: AsyncSession = Depends(get_db)):
    return DeleteResponse(deleted=await documents.delete_document(db, doc_id))
