"""Chef ORM model."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IdMixin, UpdatedAtMixin


class Chef(Base, IdMixin, UpdatedAtMixin):
    """A TV chef listed in the directory."""

    __tablename__ = "chefs"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    mini_bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    instagram_handle: Mapped[str | None] = mapped_column(String(128), nullable=True)
    james_beard_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    restaurants = relationship("Restaurant", back_populates="chef")
    shows = relationship("ChefShow", back_populates="chef")
