"""Restaurant ORM model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdMixin, UpdatedAtMixin

RESTAURANT_STATUSES = ("open", "closed", "unknown")
PRICE_TIERS = ("$", "$$", "$$$", "$$$$")
CHEF_ROLES = ("owner", "executive_chef", "partner", "consultant")


class Restaurant(Base, IdMixin, UpdatedAtMixin):
    """A restaurant owned or run by a chef."""

    __tablename__ = "restaurants"

    chef_id: Mapped[str] = mapped_column(ForeignKey("chefs.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(100), default="US", nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    google_place_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    google_rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    google_review_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    photo_urls_json: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="unknown", nullable=False)
    price_tier: Mapped[str | None] = mapped_column(String(4), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    chef_role: Mapped[str] = mapped_column(String(32), default="owner", nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verification_source: Mapped[str | None] = mapped_column(String(128), nullable=True)
    source_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    chef = relationship("Chef", back_populates="restaurants")
