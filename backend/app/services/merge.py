"""Transactional merge execution for duplicate chefs and restaurants."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from app.duplicates.similarity import normalize_name
from app.duplicates.strategist import RESULT_RANK, ChefMergeDecision
from app.models.chef import Chef
from app.models.chef_show import SHOW_RESULTS, ChefShow
from app.models.pending_discovery import PendingDiscovery
from app.models.restaurant import Restaurant
from app.models.show import Show
from app.schemas.data_change import ChangeSource, DataChangeCreate
from app.services.audit import log_data_change
from app.services.slugs import slugify, unique_slug

logger = logging.getLogger(__name__)

_CHEF_FIELDS = ("name", "slug", "mini_bio", "photo_url", "instagram_handle", "james_beard_status")


class MergeExecutionError(RuntimeError):
    """Raised when a merge cannot be applied; nothing was written."""


class MergeValidationError(MergeExecutionError):
    """The merge request itself is inconsistent."""


class MergeNotFoundError(MergeExecutionError):
    """A referenced record does not exist."""


@dataclass(slots=True)
class MergeReport:
    """Counts for one chef merge, real or simulated."""

    keeper_id: str
    loser_id: str
    restaurants_transferred: int
    shows_inserted: int
    dry_run: bool = False


@dataclass(slots=True)
class RestaurantMergeReport:
    """Outcome of hiding duplicate restaurants behind their keepers."""

    keepers: list[tuple[str, str]] = field(default_factory=list)
    hidden: list[tuple[str, str]] = field(default_factory=list)
    dry_run: bool = False


@dataclass(slots=True)
class _ShowLinkPlan:
    update_keeper: list[tuple[ChefShow, str, bool]] = field(default_factory=list)
    reassign_loser: list[tuple[ChefShow, str, bool]] = field(default_factory=list)
    insert: list[tuple[str, str | None, str, str, bool]] = field(default_factory=list)
    delete_loser: list[ChefShow] = field(default_factory=list)


def merge_chefs(
    db: Session,
    decision: ChefMergeDecision,
    *,
    dry_run: bool = False,
    source: ChangeSource = "automated_pipeline",
    confidence: float | None = None,
    commit: bool = True,
) -> MergeReport:
    """Fold the losing chef into the keeper in one transaction.

    Restaurants and pending discoveries move to the keeper, show links are
    reassigned or inserted without creating a second row for any
    (show, season), the loser is deleted, and keeper fields are overwritten
    with the decision. On any failure the session is rolled back.
    """

    total_started = perf_counter()
    keeper, loser = _load_chef_pair(db, decision.keeper_id, decision.loser_id)
    loser_id = loser.id
    if loser.protected and source != "human_review":
        raise MergeValidationError(f"Chef {loser.id} is protected; only a human reviewer may merge it away")

    loser_restaurants = list(
        db.scalars(select(Restaurant).where(Restaurant.chef_id == loser.id).order_by(Restaurant.id)).all()
    )
    plan = _plan_show_links(db, decision, keeper, loser)
    shows_inserted = len(plan.reassign_loser) + len(plan.insert)
    report = MergeReport(
        keeper_id=keeper.id,
        loser_id=loser.id,
        restaurants_transferred=len(loser_restaurants),
        shows_inserted=shows_inserted,
        dry_run=dry_run,
    )
    if dry_run:
        logger.info(
            "merge.chefs_dry_run keeper_id=%s loser_id=%s restaurants=%d shows=%d",
            keeper.id,
            loser.id,
            report.restaurants_transferred,
            report.shows_inserted,
        )
        return report

    try:
        keeper_before = _chef_snapshot(keeper)
        loser_before = _chef_snapshot(loser)
        now = datetime.now(timezone.utc)

        for restaurant in loser_restaurants:
            restaurant.chef_id = keeper.id
            restaurant.updated_at = now
            log_data_change(
                db,
                DataChangeCreate(
                    table_name="restaurants",
                    record_id=restaurant.id,
                    change_type="update",
                    old_data={"chef_id": loser_id},
                    new_data={"chef_id": keeper.id},
                    source=source,
                    confidence=confidence,
                ),
            )

        for link, result, is_primary in plan.update_keeper:
            link.result = result
            link.is_primary = is_primary
        for link, result, is_primary in plan.reassign_loser:
            link.chef_id = keeper.id
            link.result = result
            link.is_primary = is_primary
        for link in plan.delete_loser:
            db.delete(link)
        for show_id, season, show_name, result, is_primary in plan.insert:
            db.add(
                ChefShow(
                    chef_id=keeper.id,
                    show_id=show_id,
                    season=season,
                    season_name=f"{show_name} {season}" if season else show_name,
                    result=result,
                    is_primary=is_primary,
                )
            )

        db.execute(
            update(PendingDiscovery)
            .where(PendingDiscovery.source_chef_id == loser_id)
            .values(source_chef_id=keeper.id)
        )
        db.flush()

        db.expire(keeper, ["shows", "restaurants"])
        db.expire(loser, ["shows", "restaurants"])
        db.delete(loser)
        db.flush()

        keeper.name = decision.name
        keeper.slug = unique_slug(db, Chef, slugify(decision.slug) or slugify(decision.name), exclude_id=keeper.id)
        keeper.mini_bio = decision.mini_bio
        keeper.photo_url = decision.photo_url
        keeper.instagram_handle = decision.instagram_handle
        keeper.james_beard_status = decision.james_beard_status
        keeper.updated_at = now

        log_data_change(
            db,
            DataChangeCreate(
                table_name="chefs",
                record_id=keeper.id,
                change_type="update",
                old_data=keeper_before,
                new_data={**_chef_snapshot(keeper), "merged_from": loser_id},
                source=source,
                confidence=confidence,
            ),
        )
        log_data_change(
            db,
            DataChangeCreate(
                table_name="chefs",
                record_id=loser_id,
                change_type="delete",
                old_data=loser_before,
                new_data={"merged_into": keeper.id, "reasoning": decision.reasoning},
                source=source,
                confidence=confidence,
            ),
        )
        if commit:
            db.commit()
        else:
            db.flush()
    except Exception as exc:
        db.rollback()
        logger.exception(
            "merge.chefs_failed keeper_id=%s loser_id=%s elapsed_ms=%.2f",
            decision.keeper_id,
            decision.loser_id,
            (perf_counter() - total_started) * 1000.0,
        )
        raise MergeExecutionError(f"Atomic chef merge failed: {exc}") from exc

    logger.info(
        "merge.chefs keeper_id=%s loser_id=%s restaurants=%d shows=%d total_ms=%.2f",
        report.keeper_id,
        report.loser_id,
        report.restaurants_transferred,
        report.shows_inserted,
        (perf_counter() - total_started) * 1000.0,
    )
    return report


def merge_restaurants(
    db: Session,
    keeper_ids: list[str],
    loser_ids: list[str],
    *,
    source: ChangeSource = "human_review",
    dry_run: bool = False,
    commit: bool = True,
) -> RestaurantMergeReport:
    """Soft-hide losing restaurants (closed, not public) in one transaction."""

    overlap = set(keeper_ids) & set(loser_ids)
    if overlap:
        raise MergeValidationError("Keeper and loser IDs cannot overlap")
    if not keeper_ids:
        raise MergeValidationError("At least one restaurant must be kept")
    if not loser_ids:
        raise MergeValidationError("No restaurants to hide")

    keepers = _load_restaurants(db, keeper_ids, "keeper")
    losers = _load_restaurants(db, loser_ids, "loser")
    if source != "human_review":
        protected = [restaurant.id for restaurant in losers if restaurant.protected]
        if protected:
            raise MergeValidationError(f"Protected restaurants cannot be hidden automatically: {protected}")

    report = RestaurantMergeReport(
        keepers=[(restaurant.id, restaurant.name) for restaurant in keepers],
        hidden=[(restaurant.id, restaurant.name) for restaurant in losers],
        dry_run=dry_run,
    )
    if dry_run:
        return report

    try:
        now = datetime.now(timezone.utc)
        for restaurant in losers:
            old_state = {"status": restaurant.status, "is_public": restaurant.is_public}
            restaurant.status = "closed"
            restaurant.is_public = False
            restaurant.updated_at = now
            log_data_change(
                db,
                DataChangeCreate(
                    table_name="restaurants",
                    record_id=restaurant.id,
                    change_type="update",
                    old_data=old_state,
                    new_data={"status": "closed", "is_public": False, "merged_into": keepers[0].id},
                    source=source,
                ),
            )
        if commit:
            db.commit()
        else:
            db.flush()
    except Exception as exc:
        db.rollback()
        logger.exception("merge.restaurants_failed keeper_ids=%s loser_ids=%s", keeper_ids, loser_ids)
        raise MergeExecutionError(f"Failed to hide duplicate restaurants: {exc}") from exc

    logger.info(
        "merge.restaurants kept=%s hidden=%s",
        ", ".join(name for _, name in report.keepers),
        ", ".join(name for _, name in report.hidden),
    )
    return report


def _load_chef_pair(db: Session, keeper_id: str, loser_id: str) -> tuple[Chef, Chef]:
    if keeper_id == loser_id:
        raise MergeValidationError("Keeper and loser must be different chefs")
    chefs = {
        chef.id: chef
        for chef in db.scalars(
            select(Chef)
            .options(selectinload(Chef.shows).selectinload(ChefShow.show))
            .where(Chef.id.in_([keeper_id, loser_id]))
        ).all()
    }
    if keeper_id not in chefs:
        raise MergeNotFoundError(f"Keeper chef {keeper_id} not found")
    if loser_id not in chefs:
        raise MergeNotFoundError(f"Loser chef {loser_id} not found")
    return chefs[keeper_id], chefs[loser_id]


def _load_restaurants(db: Session, ids: list[str], role: str) -> list[Restaurant]:
    rows = {restaurant.id: restaurant for restaurant in db.scalars(select(Restaurant).where(Restaurant.id.in_(ids))).all()}
    missing = [record_id for record_id in ids if record_id not in rows]
    if missing:
        raise MergeNotFoundError(f"Some {role} restaurants not found: {missing}")
    return [rows[record_id] for record_id in ids]


def _resolve_show_id(db: Session, show_name: str, cache: dict[str, str]) -> str:
    key = show_name.strip().lower()
    if key in cache:
        return cache[key]
    show = db.scalar(
        select(Show).where((func.lower(Show.name) == key) | (Show.slug == slugify(show_name))).limit(1)
    )
    if show is None:
        raise MergeValidationError(f"Show {show_name!r} not found")
    cache[key] = show.id
    return show.id


def _plan_show_links(db: Session, decision: ChefMergeDecision, keeper: Chef, loser: Chef) -> _ShowLinkPlan:
    plan = _ShowLinkPlan()
    show_cache: dict[str, str] = {}
    keeper_links = {_link_key(link): link for link in keeper.shows}
    loser_links: dict[tuple[str, str], ChefShow] = {}
    for link in loser.shows:
        key = _link_key(link)
        if key in loser_links:
            plan.delete_loser.append(link)
        else:
            loser_links[key] = link

    claimed: set[tuple[str, str]] = set()
    decision_has_primary = any(show.is_primary for show in decision.shows)
    for show in decision.shows:
        show_id = _resolve_show_id(db, show.show_name, show_cache)
        key = (show_id, _season_key(show.season))
        if key in claimed:
            continue
        claimed.add(key)
        result = show.result if show.result in SHOW_RESULTS else None
        if key in keeper_links:
            link = keeper_links[key]
            plan.update_keeper.append((link, result or _better_result(link, loser_links.get(key)), show.is_primary))
            if key in loser_links:
                plan.delete_loser.append(loser_links[key])
        elif key in loser_links:
            link = loser_links[key]
            plan.reassign_loser.append((link, result or link.result, show.is_primary))
        else:
            plan.insert.append((show_id, show.season, show.show_name, result or "contestant", show.is_primary))

    # Appearances the decision omitted still belong to the merged chef.
    for key, link in keeper_links.items():
        if key not in claimed:
            claimed.add(key)
            if key in loser_links:
                plan.delete_loser.append(loser_links[key])
            plan.update_keeper.append((link, link.result, link.is_primary and not decision_has_primary))
    for key, link in loser_links.items():
        if key not in claimed:
            claimed.add(key)
            plan.reassign_loser.append((link, link.result, False))
    _settle_primary(plan)
    return plan


def _settle_primary(plan: _ShowLinkPlan) -> None:
    """Leave exactly one primary appearance among the merged chef's links.

    The first flagged row wins; with none flagged, the most prestigious result
    is promoted.
    """

    rows = [
        (bucket, index)
        for bucket in (plan.update_keeper, plan.reassign_loser, plan.insert)
        for index in range(len(bucket))
    ]
    if not rows:
        return
    flagged = [(bucket, index) for bucket, index in rows if bucket[index][-1]]
    if flagged:
        chosen_bucket, chosen_index = flagged[0]
    else:
        chosen_bucket, chosen_index = max(rows, key=lambda row: RESULT_RANK.get(row[0][row[1]][-2], 0))
    for bucket, index in rows:
        is_primary = bucket is chosen_bucket and index == chosen_index
        if bucket[index][-1] != is_primary:
            bucket[index] = (*bucket[index][:-1], is_primary)


def _link_key(link: ChefShow) -> tuple[str, str]:
    return (link.show_id, _season_key(link.season))


def _season_key(season: str | None) -> str:
    return normalize_name(season or "")


def _better_result(keeper_link: ChefShow, loser_link: ChefShow | None) -> str:
    if loser_link is None:
        return keeper_link.result
    if RESULT_RANK.get(loser_link.result, 0) > RESULT_RANK.get(keeper_link.result, 0):
        return loser_link.result
    return keeper_link.result


def _chef_snapshot(chef: Chef) -> dict[str, object]:
    return {name: getattr(chef, name) for name in _CHEF_FIELDS}
