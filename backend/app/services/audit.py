"""Append-only audit log writes and reads."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.data_change import DataChange
from app.schemas.data_change import DataChangeCreate


def log_data_change(db: Session, entry: DataChangeCreate) -> DataChange:
    """Stage one audit row in the caller's transaction."""

    record = DataChange(
        table_name=entry.table_name,
        record_id=entry.record_id,
        change_type=entry.change_type,
        old_data_json=entry.old_data,
        new_data_json=entry.new_data,
        source=entry.source,
        confidence=entry.confidence,
    )
    db.add(record)
    return record


def list_data_changes(
    db: Session,
    *,
    table_name: str | None = None,
    record_id: str | None = None,
    limit: int = 100,
) -> list[DataChange]:
    """Return audit rows newest first."""

    stmt = select(DataChange)
    if table_name is not None:
        stmt = stmt.where(DataChange.table_name == table_name)
    if record_id is not None:
        stmt = stmt.where(DataChange.record_id == record_id)
    stmt = stmt.order_by(DataChange.created_at.desc(), DataChange.id.asc()).limit(limit)
    return list(db.scalars(stmt).all())
