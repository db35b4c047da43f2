from sqlalchemy import (
    Column, Integer, String, JSON,
    DateTime, Index, func,
)
from inspection_records.database import Base


class CurrentRecord(Base):
    __tablename__ = "current_records"

    pk          = Column(Integer, primary_key=True, autoincrement=True)
    record_id   = Column(String(64), nullable=False)
    entity_key  = Column(String(255), nullable=False)
    payload     = Column(JSON, nullable=False)
    created_at  = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_current_record_id", "record_id"),
    )


class ArchivedRecord(Base):
    __tablename__ = "archive_records"

    pk          = Column(Integer, primary_key=True, autoincrement=True)
    month       = Column(String(7), nullable=False)       # YYYY-MM
    record_id   = Column(String(64), nullable=False)
    entity_key  = Column(String(255), nullable=False)
    payload     = Column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_archive_month", "month"),
        Index("ix_archive_record_id", "record_id"),
    )


class HistoryEvent(Base):
    """One append-only renewal log entry; ``seq`` is the log order."""
    __tablename__ = "history_events"

    seq         = Column(Integer, primary_key=True, autoincrement=True)
    entity_key  = Column(String(255), nullable=False)
    source      = Column(String(100), nullable=False)
    changed_at  = Column(String(40), nullable=False)      # ISO-8601, compared as text
    action      = Column(String(20), nullable=False)      # PREVIOUS | RENEWED
    record_id   = Column(String(64), nullable=True)       # data.id
    data        = Column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_history_entity", "entity_key", "action"),
        Index("ix_history_record_id", "record_id"),
    )


class Document(Base):
    __tablename__ = "documents"

    pk          = Column(Integer, primary_key=True, autoincrement=True)
    record_id   = Column(String(64), nullable=False)
    payload     = Column(JSON, nullable=False)
    created_at  = Column(DateTime(timezone=True), server_default=func.now())
    updated_at  = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        Index("ix_document_record_id", "record_id"),
    )


class StoreGeneration(Base):
    """Single-row write counter; listing cache keys embed its value."""
    __tablename__ = "store_generation"

    id          = Column(Integer, primary_key=True)
    value       = Column(Integer, nullable=False, default=0)
