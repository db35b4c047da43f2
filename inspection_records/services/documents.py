from __future__ import annotations

from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from inspection_records.adapters.legacy_fields import pick_document_fields
from inspection_records.exceptions import NotFoundError
from inspection_records.repositories.documents import DocumentRepository
from inspection_records.services.clock import new_record_id, now_iso
from inspection_records.services.lifecycle import commit_write


async def add_document(db: AsyncSession, body: Dict[str, Any]) -> Dict[str, Any]:
    document = {
        "id": new_record_id(),
        "createdAt": now_iso(),
        **pick_document_fields(body),
    }
    await DocumentRepository(db).add(document)
    await commit_write(db, "Add document")
    return document


async def update_document(db: AsyncSession, doc_id: Any, body: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay allow-listed fields from ``body`` onto the stored document."""
    repo = DocumentRepository(db)
    existing = await repo.get_by_id(doc_id)
    if existing is None:
        raise NotFoundError("Document not found", {"id": str(doc_id)})

    updated = {
        **existing,
        **pick_document_fields({**existing, **(body or {})}),
        "updatedAt": now_iso(),
    }
    await repo.replace(doc_id, updated)
    await commit_write(db, "Update document")
    return updated


async def delete_document(db: AsyncSession, doc_id: Any) -> int:
    deleted = await DocumentRepository(db).delete_by_id(doc_id)
    await commit_write(db, "Delete")
    return deleted
