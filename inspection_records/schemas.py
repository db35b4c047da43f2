from __future__ import annotations
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

# Records travel as flat camelCase mappings; see adapters.legacy_fields
# for the allow-listed inspection fields.
Record = Dict[str, Any]


class RenewRequest(BaseModel):
    entityKey: Optional[Union[str, int]] = None
    source: Optional[str] = None
    oldRecord: Optional[Record] = None
    updatedRecord: Optional[Record] = None


class RenewResponse(BaseModel):
    success: bool = True
    newRecord: Record


class RecordResponse(BaseModel):
    success: bool = True
    data: Record


class RenewedRecordResponse(BaseModel):
    success: bool = True
    record: Optional[Record] = None


class RecordListResponse(BaseModel):
    success: bool = True
    records: List[Record]


class DeleteResponse(BaseModel):
    success: bool = True
    deleted: int


class CloseMonthResponse(BaseModel):
    success: bool
    month: Optional[str] = None
    archivedCount: Optional[int] = None
    message: Optional[str] = None


class ManagerItem(BaseModel):
    kind: str
    id: Any = None
    source: str
    createdAt: str = ""
    changedAt: str = ""
    entityKey: str = ""
    month: str = ""
    data: Record = Field(default_factory=dict)


class ManagerItemsResponse(BaseModel):
    success: bool = True
    items: List[ManagerItem]


class PinRequest(BaseModel):
    pin: Optional[Union[str, int]] = None


class PinResponse(BaseModel):
    ok: bool
    message: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    database: str
    redis: str
    scheduler: str
    version: str


class StatsResponse(BaseModel):
    current: int
    archived: int
    archive_months: int
    documents: int
    history_events: int
    renewed_events: int
    cache_hits: int
    cache_misses: int
    hit_rate: float
