"""Staged discovery ORM model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, IdMixin

DISCOVERY_TYPES = ("restaurant", "show", "chef")
DISCOVERY_STATUSES = ("pending", "merged", "rejected", "needs_review")


class PendingDiscovery(Base, IdMixin, CreatedAtMixin):
    """Enrichment output waiting for admin approval."""

    __tablename__ = "pending_discoveries"

    discovery_type: Mapped[str] = mapped_column(String(16), nullable=False)
    source_chef_id: Mapped[str | None] = mapped_column(
        ForeignKey("chefs.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    source_chef_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    data_json: Mapped[dict[str, object]] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(16), index=True, default="pending", nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
