"""Chef show appearance ORM model."""

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, CreatedAtMixin, IdMixin

SHOW_RESULTS = ("winner", "finalist", "contestant", "judge")


class ChefShow(Base, IdMixin, CreatedAtMixin):
    """One chef appearance on one show season."""

    __tablename__ = "chef_shows"

    chef_id: Mapped[str] = mapped_column(ForeignKey("chefs.id"), index=True, nullable=False)
    show_id: Mapped[str] = mapped_column(ForeignKey("shows.id"), index=True, nullable=False)
    season: Mapped[str | None] = mapped_column(String(50), nullable=True)
    season_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    result: Mapped[str] = mapped_column(String(16), default="contestant", nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    performance_blurb: Mapped[str | None] = mapped_column(Text, nullable=True)

    chef = relationship("Chef", back_populates="shows")
    show = relationship("Show")


Index(
    "uq_chef_shows_chef_show_season",
    ChefShow.chef_id,
    ChefShow.show_id,
    func.coalesce(ChefShow.season, ""),
    unique=True,
)
