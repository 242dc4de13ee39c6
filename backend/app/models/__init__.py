"""ORM models package exports."""

from app.models.chef import Chef
from app.models.chef_show import ChefShow
from app.models.data_change import DataChange
from app.models.duplicate_candidate import DuplicateCandidate
from app.models.pending_discovery import PendingDiscovery
from app.models.restaurant import Restaurant
from app.models.show import Show

__all__ = [
    "Chef",
    "ChefShow",
    "DataChange",
    "DuplicateCandidate",
    "PendingDiscovery",
    "Restaurant",
    "Show",
]
