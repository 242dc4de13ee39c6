"""Load directory rows as comparable duplicate-detection profiles."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.duplicates.types import ChefProfile, RestaurantProfile, ShowAppearance
from app.models.chef import Chef
from app.models.chef_show import ChefShow
from app.models.restaurant import Restaurant


def public_restaurant_counts(db: Session, chef_ids: Iterable[str] | None = None) -> dict[str, int]:
    stmt = (
        select(Restaurant.chef_id, func.count(Restaurant.id))
        .where(Restaurant.is_public.is_(True))
        .group_by(Restaurant.chef_id)
    )
    if chef_ids is not None:
        stmt = stmt.where(Restaurant.chef_id.in_(list(chef_ids)))
    return {chef_id: int(count) for chef_id, count in db.execute(stmt)}


def chef_profile(chef: Chef, restaurant_count: int) -> ChefProfile:
    return ChefProfile(
        id=chef.id,
        name=chef.name,
        slug=chef.slug,
        mini_bio=chef.mini_bio,
        photo_url=chef.photo_url,
        instagram_handle=chef.instagram_handle,
        james_beard_status=chef.james_beard_status,
        restaurant_count=restaurant_count,
        protected=chef.protected,
        shows=[
            ShowAppearance(
                show_name=link.show.name if link.show is not None else "Unknown",
                season=link.season,
                result=link.result,
                is_primary=link.is_primary,
            )
            for link in chef.shows
        ],
    )


def restaurant_profile(restaurant: Restaurant) -> RestaurantProfile:
    return RestaurantProfile(
        id=restaurant.id,
        name=restaurant.name,
        slug=restaurant.slug,
        city=restaurant.city,
        chef_id=restaurant.chef_id,
        state=restaurant.state,
        address=restaurant.address,
        google_place_id=restaurant.google_place_id,
        google_rating=restaurant.google_rating,
        google_review_count=restaurant.google_review_count,
        photo_urls=list(restaurant.photo_urls_json or []),
        status=restaurant.status,
        price_tier=restaurant.price_tier,
        website_url=restaurant.website_url,
        protected=restaurant.protected,
    )


def load_chef_profiles(db: Session, chef_ids: Iterable[str] | None = None) -> list[ChefProfile]:
    """Load chefs ordered by name with show appearances and public restaurant counts."""

    stmt = select(Chef).options(selectinload(Chef.shows).selectinload(ChefShow.show)).order_by(Chef.name, Chef.id)
    ids = list(chef_ids) if chef_ids is not None else None
    if ids is not None:
        stmt = stmt.where(Chef.id.in_(ids))
    chefs = list(db.scalars(stmt).all())
    counts = public_restaurant_counts(db, [chef.id for chef in chefs])
    return [chef_profile(chef, counts.get(chef.id, 0)) for chef in chefs]


def load_restaurant_profiles(
    db: Session,
    restaurant_ids: Iterable[str] | None = None,
    *,
    public_only: bool = True,
) -> list[RestaurantProfile]:
    """Load restaurants ordered by city then name."""

    stmt = select(Restaurant).order_by(Restaurant.city, Restaurant.name, Restaurant.id)
    if public_only:
        stmt = stmt.where(Restaurant.is_public.is_(True))
    if restaurant_ids is not None:
        stmt = stmt.where(Restaurant.id.in_(list(restaurant_ids)))
    return [restaurant_profile(restaurant) for restaurant in db.scalars(stmt).all()]
