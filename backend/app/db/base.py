"""SQLAlchemy metadata registry import for Alembic."""

from app.models import (
    Chef,
    ChefShow,
    DataChange,
    DuplicateCandidate,
    PendingDiscovery,
    Restaurant,
    Show,
)
from app.models.base import Base

__all__ = [
    "Base",
    "Chef",
    "ChefShow",
    "DataChange",
    "DuplicateCandidate",
    "PendingDiscovery",
    "Restaurant",
    "Show",
]
