"""Approval of staged enrichment discoveries into the directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.chef import Chef
from app.models.chef_show import SHOW_RESULTS, ChefShow
from app.models.pending_discovery import PendingDiscovery
from app.models.restaurant import CHEF_ROLES, PRICE_TIERS, RESTAURANT_STATUSES, Restaurant
from app.models.show import Show
from app.schemas.data_change import DataChangeCreate
from app.schemas.discoveries import (
    ApproveRequest,
    ApproveResult,
    ChefData,
    NewRestaurantData,
    NotFoundData,
    PotentialDuplicateData,
    ShowData,
)
from app.services.audit import log_data_change
from app.services.slugs import restaurant_slug, slugify, unique_slug

logger = logging.getLogger(__name__)

KNOWN_SHOW_SLUGS: dict[str, str] = {
    "top chef": "top-chef",
    "top chef masters": "top-chef-masters",
    "tournament of champions": "tournament-of-champions",
    "chopped": "chopped",
    "beat bobby flay": "beat-bobby-flay",
    "iron chef": "iron-chef",
    "iron chef america": "iron-chef-america",
    "hell's kitchen": "hells-kitchen",
    "hells kitchen": "hells-kitchen",
    "masterchef": "masterchef",
    "next level chef": "next-level-chef",
    "guy's grocery games": "guys-grocery-games",
}


class DiscoveryApprovalError(RuntimeError):
    """Raised when a staged discovery cannot be applied."""


class DiscoveryNotFoundError(DiscoveryApprovalError):
    """The staged discovery does not exist."""


@dataclass(slots=True)
class _Applied:
    message: str
    entity_id: str | None


def approve_discovery(db: Session, request: ApproveRequest) -> ApproveResult:
    """Apply or reject one staged discovery.

    Failures leave no directory writes behind, move the discovery to
    ``needs_review`` with the failure message, and raise
    ``DiscoveryApprovalError``.
    """

    discovery = db.get(PendingDiscovery, request.id)
    if discovery is None:
        raise DiscoveryNotFoundError("Discovery not found")
    if discovery.status != "pending":
        raise DiscoveryApprovalError(f"Discovery is already {discovery.status}")

    reviewer = request.reviewed_by or "admin"
    if request.action == "reject":
        _finish(discovery, "rejected", reviewer)
        db.commit()
        logger.info("discoveries.rejected id=%s type=%s", discovery.id, discovery.discovery_type)
        return ApproveResult(success=True, message="Discovery rejected")

    handlers = {
        "restaurant": _apply_restaurant,
        "show": _apply_show,
        "chef": _apply_chef,
    }
    handler = handlers.get(discovery.discovery_type)
    if handler is None:
        raise DiscoveryApprovalError(f"Unknown discovery type {discovery.discovery_type!r}")

    discovery_id = discovery.id
    try:
        applied = handler(db, discovery)
        _finish(discovery, "merged", reviewer)
        db.commit()
    except DiscoveryApprovalError as exc:
        db.rollback()
        _mark_needs_review(db, discovery_id, reviewer, str(exc))
        raise
    except Exception as exc:
        db.rollback()
        logger.exception("discoveries.approve_failed id=%s", discovery_id)
        _mark_needs_review(db, discovery_id, reviewer, str(exc))
        raise DiscoveryApprovalError(str(exc)) from exc

    logger.info(
        "discoveries.approved id=%s type=%s entity_id=%s message=%r",
        discovery_id,
        discovery.discovery_type,
        applied.entity_id,
        applied.message,
    )
    return ApproveResult(success=True, message=applied.message, entity_id=applied.entity_id)


def _finish(discovery: PendingDiscovery, status: str, reviewer: str, error_message: str | None = None) -> None:
    discovery.status = status
    discovery.reviewed_at = datetime.now(timezone.utc)
    discovery.reviewed_by = reviewer
    discovery.error_message = error_message


def _mark_needs_review(db: Session, discovery_id: str, reviewer: str, message: str) -> None:
    discovery = db.get(PendingDiscovery, discovery_id)
    if discovery is None:
        return
    _finish(discovery, "needs_review", reviewer, message)
    db.commit()
    logger.warning("discoveries.needs_review id=%s error=%s", discovery_id, message)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    return str(errors[0].get("msg", exc))


def _apply_restaurant(db: Session, discovery: PendingDiscovery) -> _Applied:
    data = dict(discovery.data_json or {})
    action = data.get("action")

    if action == "potential_duplicate":
        try:
            duplicate = PotentialDuplicateData.model_validate(data)
        except ValidationError as exc:
            raise DiscoveryApprovalError("Invalid duplicate discovery data") from exc
        existing = duplicate.existing_restaurant
        return _Applied(
            message=f'Kept existing restaurant "{existing.name}" - duplicate rejected',
            entity_id=existing.id,
        )

    if action == "not_found_by_llm":
        try:
            not_found = NotFoundData.model_validate(data)
        except ValidationError as exc:
            raise DiscoveryApprovalError("Invalid not-found discovery data") from exc
        restaurant = db.get(Restaurant, not_found.restaurant_id)
        if restaurant is None:
            raise DiscoveryApprovalError(f"Failed to mark closed: restaurant {not_found.restaurant_id} not found")
        now = datetime.now(timezone.utc)
        old_state = {"status": restaurant.status, "verification_source": restaurant.verification_source}
        restaurant.status = "closed"
        restaurant.last_verified_at = now
        restaurant.verification_source = "admin_review_not_found_by_llm"
        restaurant.updated_at = now
        log_data_change(
            db,
            DataChangeCreate(
                table_name="restaurants",
                record_id=restaurant.id,
                change_type="update",
                old_data=old_state,
                new_data={"status": "closed", "verification_source": restaurant.verification_source},
                source="admin_approval",
            ),
        )
        return _Applied(message=f'Marked "{not_found.restaurant_name}" as closed', entity_id=restaurant.id)

    try:
        payload = NewRestaurantData.model_validate(data)
    except ValidationError as exc:
        raise DiscoveryApprovalError(f"Invalid restaurant data: {_first_error(exc)}") from exc

    chef_id = discovery.source_chef_id
    if not chef_id:
        raise DiscoveryApprovalError("Missing chef_id")
    if db.get(Chef, chef_id) is None:
        raise DiscoveryApprovalError(f"Chef {chef_id} not found")

    restaurant = Restaurant(
        name=payload.name.strip(),
        slug=unique_slug(db, Restaurant, restaurant_slug(payload.name, payload.city)),
        chef_id=chef_id,
        chef_role=payload.ownership if payload.ownership in CHEF_ROLES else "owner",
        city=payload.city.strip(),
        state=payload.state or None,
        country=payload.country or "US",
        address=payload.address or None,
        price_tier=payload.price_range if payload.price_range in PRICE_TIERS else None,
        status=payload.status if payload.status in RESTAURANT_STATUSES else "unknown",
        is_public=True,
        source_notes="Created via admin approval from discovery pipeline",
    )
    db.add(restaurant)
    db.flush()
    log_data_change(
        db,
        DataChangeCreate(
            table_name="restaurants",
            record_id=restaurant.id,
            change_type="insert",
            new_data={
                "name": restaurant.name,
                "slug": restaurant.slug,
                "chef_id": restaurant.chef_id,
                "city": restaurant.city,
                "state": restaurant.state,
            },
            source="admin_approval",
        ),
    )
    return _Applied(message=f'Created restaurant "{restaurant.name}" in {restaurant.city}', entity_id=restaurant.id)


def resolve_show(db: Session, show_name: str) -> Show | None:
    """Find a show by known-name slug, then by case-insensitive name."""

    key = show_name.strip().lower()
    slug = KNOWN_SHOW_SLUGS.get(key)
    if slug is not None:
        show = db.scalar(select(Show).where(Show.slug == slug).limit(1))
        if show is not None:
            return show
    return db.scalar(select(Show).where(func.lower(Show.name) == key).limit(1))


def _apply_show(db: Session, discovery: PendingDiscovery) -> _Applied:
    try:
        payload = ShowData.model_validate(discovery.data_json or {})
    except ValidationError as exc:
        raise DiscoveryApprovalError(f"Invalid show data: {_first_error(exc)}") from exc

    chef_id = discovery.source_chef_id
    if not chef_id:
        raise DiscoveryApprovalError("Missing chef_id")

    show_name = payload.resolved_name
    show = resolve_show(db, show_name)
    if show is None:
        raise DiscoveryApprovalError(f'Show "{show_name}" not found in database')

    season = (payload.season or "").strip() or None
    label = f"{show_name} {season}" if season else show_name
    stmt = select(ChefShow).where(ChefShow.chef_id == chef_id, ChefShow.show_id == show.id)
    stmt = stmt.where(ChefShow.season.is_(None) if season is None else ChefShow.season == season)
    existing = db.scalar(stmt.limit(1))
    if existing is not None:
        return _Applied(message=f"Chef already linked to {label}", entity_id=existing.id)

    link = ChefShow(
        chef_id=chef_id,
        show_id=show.id,
        season=season,
        season_name=label,
        result=payload.result if payload.result in SHOW_RESULTS else "contestant",
        is_primary=False,
        performance_blurb=payload.performance_blurb or None,
    )
    db.add(link)
    db.flush()
    log_data_change(
        db,
        DataChangeCreate(
            table_name="chef_shows",
            record_id=link.id,
            change_type="insert",
            new_data={"chef_id": chef_id, "show_id": show.id, "season": season, "result": link.result},
            source="admin_approval",
        ),
    )
    return _Applied(message=f"Linked chef to {label}", entity_id=link.id)


def _apply_chef(db: Session, discovery: PendingDiscovery) -> _Applied:
    try:
        payload = ChefData.model_validate(discovery.data_json or {})
    except ValidationError as exc:
        raise DiscoveryApprovalError(f"Invalid chef data: {_first_error(exc)}") from exc

    name = payload.name.strip()
    slug = slugify(name)
    if not slug:
        raise DiscoveryApprovalError(f"Invalid chef data: cannot build a slug from {name!r}")
    existing = db.scalar(select(Chef).where(Chef.slug == slug).limit(1))
    if existing is not None:
        return _Applied(message=f'Chef "{name}" already exists', entity_id=existing.id)

    chef = Chef(name=name, slug=slug, is_public=True)
    db.add(chef)
    db.flush()
    log_data_change(
        db,
        DataChangeCreate(
            table_name="chefs",
            record_id=chef.id,
            change_type="insert",
            new_data={"name": chef.name, "slug": chef.slug},
            source="admin_approval",
        ),
    )
    return _Applied(message=f'Created chef "{name}"', entity_id=chef.id)
