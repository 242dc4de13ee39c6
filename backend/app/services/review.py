"""Duplicate candidate persistence and the human review surface."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.duplicates.scanner import DuplicatePair
from app.duplicates.strategist import build_rule_based_decision
from app.duplicates.types import ChefProfile, RestaurantProfile
from app.models.chef import Chef
from app.models.duplicate_candidate import DuplicateCandidate
from app.models.restaurant import Restaurant
from app.schemas.duplicates import (
    DuplicateGroupRead,
    DuplicateMemberRead,
    KeepAllResultRead,
    MergedRecordRead,
    MergeRequest,
    MergeResultRead,
)
from app.services.directory import load_chef_profiles, load_restaurant_profiles
from app.services.merge import (
    MergeExecutionError,
    MergeNotFoundError,
    MergeValidationError,
    merge_chefs,
    merge_restaurants,
)

logger = logging.getLogger(__name__)

EntityType = Literal["chef", "restaurant"]


def restaurant_completeness_score(restaurant: RestaurantProfile) -> int:
    """Higher scores mean a more complete listing."""

    score = 0
    if restaurant.google_place_id:
        score += 10
    if restaurant.photo_urls:
        score += 5
    if restaurant.google_rating:
        score += 3
    if restaurant.website_url:
        score += 2
    if restaurant.status == "open":
        score += 1
    return score


def chef_completeness_score(chef: ChefProfile) -> int:
    score = 0
    if chef.photo_url:
        score += 10
    if chef.mini_bio:
        score += 5
    if chef.instagram_handle:
        score += 3
    if chef.james_beard_status:
        score += 2
    return score + chef.restaurant_count


def recommended_keeper_ids(scored: Sequence[tuple[str, int, bool]]) -> list[str]:
    """Pick keepers from (id, score, protected) triples.

    The highest-scoring records are recommended, and protected records are
    always recommended so they never surface as a suggested loser.
    """

    if not scored:
        return []
    best = max(score for _, score, _ in scored)
    return [record_id for record_id, score, protected in scored if score == best or protected]


def save_scan_candidates(
    db: Session,
    entity_type: EntityType,
    pairs: Sequence[DuplicatePair],
    *,
    status: str = "pending",
) -> list[DuplicateCandidate]:
    """Persist one candidate group per confirmed pair."""

    rows: list[DuplicateCandidate] = []
    for pair in pairs:
        row = DuplicateCandidate(
            group_id=str(uuid4()),
            entity_type=entity_type,
            record_ids_json=pair.record_ids,
            similarity=max(0.0, min(1.0, pair.similarity)),
            confidence=max(0.0, min(1.0, pair.confidence)),
            reasoning=pair.reasoning,
            status=status,
        )
        db.add(row)
        rows.append(row)
    db.commit()
    return rows


def clear_pending_candidates(db: Session, entity_type: EntityType | None = None) -> int:
    """Delete pending candidates so a fresh scan can replace them."""

    stmt = delete(DuplicateCandidate).where(DuplicateCandidate.status == "pending")
    if entity_type is not None:
        stmt = stmt.where(DuplicateCandidate.entity_type == entity_type)
    result = db.execute(stmt)
    db.commit()
    return int(result.rowcount or 0)


def set_group_status(
    db: Session,
    group_id: str,
    status: str,
    *,
    resolved_by: str | None = None,
    merged_into: str | None = None,
    error_message: str | None = None,
) -> int:
    """Move every candidate row of a group to ``status``. Caller commits."""

    rows = list(db.scalars(select(DuplicateCandidate).where(DuplicateCandidate.group_id == group_id)).all())
    now = datetime.now(timezone.utc)
    for row in rows:
        row.status = status
        row.resolved_at = now
        row.resolved_by = resolved_by or "admin"
        row.merged_into = merged_into
        row.error_message = error_message
    return len(rows)


def list_pending_groups(db: Session, entity_type: EntityType | None = None) -> list[DuplicateGroupRead]:
    """Return pending duplicate groups with members and recommended keepers."""

    stmt = select(DuplicateCandidate).where(DuplicateCandidate.status == "pending")
    if entity_type is not None:
        stmt = stmt.where(DuplicateCandidate.entity_type == entity_type)
    stmt = stmt.order_by(DuplicateCandidate.confidence.desc(), DuplicateCandidate.created_at, DuplicateCandidate.id)
    candidates = list(db.scalars(stmt).all())

    grouped: dict[str, list[DuplicateCandidate]] = {}
    for candidate in candidates:
        grouped.setdefault(candidate.group_id, []).append(candidate)

    groups: list[DuplicateGroupRead] = []
    for group_id, rows in grouped.items():
        record_ids = list(dict.fromkeys(record_id for row in rows for record_id in row.record_ids_json))
        head = rows[0]
        if head.entity_type == "restaurant":
            members = _restaurant_members(db, record_ids)
        else:
            members = _chef_members(db, record_ids)
        if len(members) < 2:
            continue
        groups.append(
            DuplicateGroupRead(
                group_id=group_id,
                entity_type=head.entity_type,
                confidence=max(row.confidence for row in rows),
                similarity=max(row.similarity for row in rows),
                reasoning=head.reasoning,
                status=head.status,
                members=members,
                recommended_keeper_ids=[member.id for member in members if member.recommended],
            )
        )
    return groups


def keep_all(db: Session, group_id: str, *, resolved_by: str | None = None) -> KeepAllResultRead:
    """Mark a pending group as not duplicates."""

    _find_group(db, group_id, [])
    set_group_status(db, group_id, "rejected", resolved_by=resolved_by)
    db.commit()
    logger.info("review.keep_all group_id=%s resolved_by=%s", group_id, resolved_by or "admin")
    return KeepAllResultRead(group_id=group_id, status="rejected")


def resolve_group_merge(db: Session, request: MergeRequest) -> MergeResultRead:
    """Execute a reviewer's keeper/loser choice for one group.

    Request-shape problems raise ``MergeValidationError``/``MergeNotFoundError``
    and leave the group untouched. Execution failures roll back every write and
    move the group to ``needs_review``.
    """

    keeper_ids = list(dict.fromkeys(request.keeper_ids))
    loser_ids = list(dict.fromkeys(request.loser_ids))
    if set(keeper_ids) & set(loser_ids):
        raise MergeValidationError("Keeper and loser IDs cannot overlap")
    if not loser_ids:
        raise MergeValidationError("No records to merge away")

    group_id, rows = _find_group(db, request.group_id, keeper_ids + loser_ids)
    entity_type = rows[0].entity_type if rows else _infer_entity_type(db, keeper_ids + loser_ids)
    if rows:
        members = {record_id for row in rows for record_id in row.record_ids_json}
        outside = [record_id for record_id in keeper_ids + loser_ids if record_id not in members]
        if outside:
            raise MergeValidationError(f"Records are not part of group {group_id}: {outside}")

    try:
        if entity_type == "restaurant":
            result = _merge_restaurant_group(db, group_id, keeper_ids, loser_ids)
        else:
            result = _merge_chef_group(db, group_id, keeper_ids, loser_ids)
        if group_id is not None:
            set_group_status(
                db,
                group_id,
                "merged",
                resolved_by=request.resolved_by,
                merged_into=keeper_ids[0],
            )
        db.commit()
    except (MergeValidationError, MergeNotFoundError):
        db.rollback()
        raise
    except MergeExecutionError as exc:
        db.rollback()
        if group_id is not None:
            set_group_status(db, group_id, "needs_review", resolved_by=request.resolved_by, error_message=str(exc))
            db.commit()
        raise

    logger.info(
        "review.merge group_id=%s entity_type=%s kept=%d merged=%d",
        group_id,
        entity_type,
        result.kept,
        result.hidden,
    )
    return result


def _merge_restaurant_group(
    db: Session,
    group_id: str | None,
    keeper_ids: list[str],
    loser_ids: list[str],
) -> MergeResultRead:
    report = merge_restaurants(db, keeper_ids, loser_ids, source="human_review", commit=False)
    return MergeResultRead(
        group_id=group_id,
        entity_type="restaurant",
        kept=len(report.keepers),
        hidden=len(report.hidden),
        keepers=[MergedRecordRead(id=record_id, name=name) for record_id, name in report.keepers],
        merged=[MergedRecordRead(id=record_id, name=name) for record_id, name in report.hidden],
    )


def _merge_chef_group(
    db: Session,
    group_id: str | None,
    keeper_ids: list[str],
    loser_ids: list[str],
) -> MergeResultRead:
    if len(keeper_ids) != 1:
        raise MergeValidationError("Chef merges need exactly one keeper")
    keeper_id = keeper_ids[0]
    profiles = {profile.id: profile for profile in load_chef_profiles(db, [keeper_id, *loser_ids])}
    missing = [record_id for record_id in [keeper_id, *loser_ids] if record_id not in profiles]
    if missing:
        raise MergeNotFoundError(f"Some chefs not found: {missing}")

    keeper_profile = profiles[keeper_id]
    merged: list[MergedRecordRead] = []
    restaurants_transferred = 0
    shows_inserted = 0
    for loser_id in loser_ids:
        loser_profile = profiles[loser_id]
        decision = build_rule_based_decision(keeper_profile, loser_profile)
        report = merge_chefs(db, decision, source="human_review", commit=False)
        restaurants_transferred += report.restaurants_transferred
        shows_inserted += report.shows_inserted
        merged.append(MergedRecordRead(id=loser_id, name=loser_profile.name))
        keeper_profile = load_chef_profiles(db, [keeper_id])[0]

    return MergeResultRead(
        group_id=group_id,
        entity_type="chef",
        kept=1,
        hidden=len(merged),
        keepers=[MergedRecordRead(id=keeper_profile.id, name=keeper_profile.name)],
        merged=merged,
        restaurants_transferred=restaurants_transferred,
        shows_inserted=shows_inserted,
    )


def _find_group(
    db: Session,
    group_id: str | None,
    record_ids: list[str],
) -> tuple[str | None, list[DuplicateCandidate]]:
    if group_id is not None:
        rows = list(db.scalars(select(DuplicateCandidate).where(DuplicateCandidate.group_id == group_id)).all())
        if not rows:
            raise MergeNotFoundError(f"Duplicate group {group_id} not found")
        if any(row.status != "pending" for row in rows):
            raise MergeValidationError(f"Duplicate group {group_id} is already resolved")
        return group_id, rows

    # Two-record requests carry no group id; match a pending group by membership.
    wanted = set(record_ids)
    pending = db.scalars(select(DuplicateCandidate).where(DuplicateCandidate.status == "pending")).all()
    for row in pending:
        if wanted <= set(row.record_ids_json):
            return row.group_id, [
                candidate for candidate in pending if candidate.group_id == row.group_id
            ]
    return None, []


def _infer_entity_type(db: Session, record_ids: list[str]) -> EntityType:
    if db.scalar(select(Restaurant.id).where(Restaurant.id.in_(record_ids)).limit(1)) is not None:
        return "restaurant"
    if db.scalar(select(Chef.id).where(Chef.id.in_(record_ids)).limit(1)) is not None:
        return "chef"
    raise MergeNotFoundError(f"No chef or restaurant found for ids {record_ids}")


def _restaurant_members(db: Session, record_ids: list[str]) -> list[DuplicateMemberRead]:
    by_id = {profile.id: profile for profile in load_restaurant_profiles(db, record_ids, public_only=False)}
    profiles = [by_id[record_id] for record_id in record_ids if record_id in by_id]
    scored = [(profile.id, restaurant_completeness_score(profile), profile.protected) for profile in profiles]
    recommended = set(recommended_keeper_ids(scored))
    return [
        DuplicateMemberRead(
            id=profile.id,
            name=profile.name,
            slug=profile.slug,
            city=profile.city,
            state=profile.state,
            address=profile.address,
            status=profile.status,
            protected=profile.protected,
            completeness_score=score,
            recommended=profile.id in recommended,
            details={
                "google_place_id": profile.google_place_id,
                "google_rating": profile.google_rating,
                "google_review_count": profile.google_review_count,
                "photo_count": len(profile.photo_urls),
                "price_tier": profile.price_tier,
                "website_url": profile.website_url,
                "chef_id": profile.chef_id,
            },
        )
        for profile, (_, score, _) in zip(profiles, scored)
    ]


def _chef_members(db: Session, record_ids: list[str]) -> list[DuplicateMemberRead]:
    by_id = {profile.id: profile for profile in load_chef_profiles(db, record_ids)}
    profiles = [by_id[record_id] for record_id in record_ids if record_id in by_id]
    scored = [(profile.id, chef_completeness_score(profile), profile.protected) for profile in profiles]
    recommended = set(recommended_keeper_ids(scored))
    return [
        DuplicateMemberRead(
            id=profile.id,
            name=profile.name,
            slug=profile.slug,
            protected=profile.protected,
            completeness_score=score,
            recommended=profile.id in recommended,
            details={
                "mini_bio": profile.mini_bio,
                "photo_url": profile.photo_url,
                "instagram_handle": profile.instagram_handle,
                "james_beard_status": profile.james_beard_status,
                "restaurant_count": profile.restaurant_count,
                "shows": [
                    {"show_name": show.show_name, "season": show.season, "result": show.result}
                    for show in profile.shows
                ],
            },
        )
        for profile, (_, score, _) in zip(profiles, scored)
    ]
