"""Typed records compared by duplicate detection, independent of persistence."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class ShowAppearance:
    """A chef's appearance on one show season."""

    show_name: str
    season: str | None = None
    result: str | None = None
    is_primary: bool = False


@dataclass(slots=True)
class ChefProfile:
    """Comparable chef fields."""

    id: str
    name: str
    slug: str
    mini_bio: str | None = None
    photo_url: str | None = None
    instagram_handle: str | None = None
    james_beard_status: str | None = None
    restaurant_count: int = 0
    protected: bool = False
    shows: list[ShowAppearance] = field(default_factory=list)


@dataclass(slots=True)
class RestaurantProfile:
    """Comparable restaurant fields."""

    id: str
    name: str
    slug: str
    city: str
    chef_id: str
    state: str | None = None
    address: str | None = None
    google_place_id: str | None = None
    google_rating: float | None = None
    google_review_count: int | None = None
    photo_urls: list[str] = field(default_factory=list)
    status: str | None = None
    price_tier: str | None = None
    website_url: str | None = None
    protected: bool = False
