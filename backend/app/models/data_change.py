"""Append-only audit log model."""

from sqlalchemy import JSON, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin

CHANGE_TYPES = ("insert", "update", "delete")
CHANGE_SOURCES = ("automated_pipeline", "human_review", "manual_edit", "admin_approval")


class DataChange(Base, IdMixin, CreatedAtMixin):
    """One recorded mutation of a directory record. Rows are never updated."""

    __tablename__ = "data_changes"

    table_name: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    record_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    change_type: Mapped[str] = mapped_column(String(16), nullable=False)
    old_data_json: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    new_data_json: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
