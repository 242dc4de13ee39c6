"""Duplicate candidate ORM model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin, new_uuid

CANDIDATE_STATUSES = ("pending", "merged", "rejected", "needs_review")


class DuplicateCandidate(Base, IdMixin, CreatedAtMixin):
    """A scanned group of records believed to describe the same real-world entity."""

    __tablename__ = "duplicate_candidates"

    group_id: Mapped[str] = mapped_column(String(36), index=True, default=new_uuid, nullable=False)
    entity_type: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    record_ids_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    similarity: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), index=True, default="pending", nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    merged_into: Mapped[str | None] = mapped_column(String(36), nullable=True)
