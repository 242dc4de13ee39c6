"""Batch duplicate jobs run by the maintenance scripts."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from time import perf_counter

from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.duplicates.scanner import ScanReport, scan_chefs, scan_restaurants
from app.duplicates.strategist import ChefMergeDecision, MergeStrategist, MergeStrategyError
from app.duplicates.types import ChefProfile, RestaurantProfile
from app.duplicates.verifier import DuplicateVerifier
from app.services.directory import load_chef_profiles, load_restaurant_profiles
from app.services.merge import MergeExecutionError, MergeReport, merge_chefs
from app.services.review import clear_pending_candidates, save_scan_candidates

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChefPairResult:
    """What happened to one confirmed duplicate chef pair."""

    left_name: str
    right_name: str
    confidence: float
    decision: ChefMergeDecision | None = None
    report: MergeReport | None = None
    error: str | None = None
    skipped: str | None = None


@dataclass
class ChefJobReport:
    scan: ScanReport[ChefProfile]
    pairs: list[ChefPairResult] = field(default_factory=list)
    dry_run: bool = False
    estimated_cost: float = 0.0

    @property
    def failures(self) -> list[ChefPairResult]:
        return [pair for pair in self.pairs if pair.error is not None]

    @property
    def merged(self) -> list[ChefPairResult]:
        return [pair for pair in self.pairs if pair.report is not None]


@dataclass
class RestaurantJobReport:
    scan: ScanReport[RestaurantProfile]
    cleared: int = 0
    saved: int = 0
    dry_run: bool = False
    estimated_cost: float = 0.0


def run_chef_duplicate_job(
    db: Session,
    verifier: DuplicateVerifier,
    strategist: MergeStrategist,
    *,
    min_similarity: float,
    min_confidence: float,
    dry_run: bool = False,
    pause_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    settings: Settings | None = None,
) -> ChefJobReport:
    """Scan every chef, then plan and execute a merge for each confirmed pair.

    A failing pair is recorded and the job moves on to the next one. When an
    earlier merge removed one side of a later pair, that side is followed to
    the chef it was merged into.
    """

    started = perf_counter()
    chefs = load_chef_profiles(db)
    scan = scan_chefs(
        verifier,
        chefs,
        min_similarity=min_similarity,
        min_confidence=min_confidence,
        pause_seconds=pause_seconds,
        sleep=sleep,
    )
    job = ChefJobReport(scan=scan, dry_run=dry_run)

    merged_into: dict[str, str] = {}
    for pair in scan.candidates:
        result = ChefPairResult(left_name=pair.left.name, right_name=pair.right.name, confidence=pair.confidence)
        job.pairs.append(result)

        left_id = _follow(merged_into, pair.left.id)
        right_id = _follow(merged_into, pair.right.id)
        if left_id == right_id:
            result.skipped = "already merged"
            continue
        current = {profile.id: profile for profile in load_chef_profiles(db, [left_id, right_id])}
        if left_id not in current or right_id not in current:
            result.skipped = "chef no longer exists"
            continue

        try:
            decision = strategist.decide(current[left_id], current[right_id])
            result.decision = decision
            result.report = merge_chefs(
                db,
                decision,
                dry_run=dry_run,
                source="automated_pipeline",
                confidence=pair.confidence,
            )
        except (MergeStrategyError, MergeExecutionError) as exc:
            result.error = str(exc)
            logger.warning(
                "duplicates.chef_pair_failed left=%r right=%r error=%s",
                pair.left.name,
                pair.right.name,
                exc,
            )
            continue
        if not dry_run:
            merged_into[decision.loser_id] = decision.keeper_id

    job.estimated_cost = _estimated_cost(settings, verifier, strategist)
    logger.info(
        "duplicates.chef_job chefs=%d verified=%d confirmed=%d merged=%d failed=%d dry_run=%s total_ms=%.2f",
        scan.records_scanned,
        scan.pairs_verified,
        len(scan.candidates),
        len(job.merged),
        len(job.failures),
        dry_run,
        (perf_counter() - started) * 1000.0,
    )
    return job


def run_restaurant_duplicate_job(
    db: Session,
    verifier: DuplicateVerifier,
    *,
    min_similarity: float,
    min_confidence: float,
    dry_run: bool = False,
    pause_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    settings: Settings | None = None,
) -> RestaurantJobReport:
    """Scan public restaurants city by city and store confirmed pairs for review."""

    started = perf_counter()
    job = RestaurantJobReport(scan=ScanReport(), dry_run=dry_run)
    if not dry_run:
        job.cleared = clear_pending_candidates(db, "restaurant")

    restaurants = load_restaurant_profiles(db)
    job.scan = scan_restaurants(
        verifier,
        restaurants,
        min_similarity=min_similarity,
        min_confidence=min_confidence,
        pause_seconds=pause_seconds,
        sleep=sleep,
    )
    if not dry_run and job.scan.candidates:
        job.saved = len(save_scan_candidates(db, "restaurant", job.scan.candidates))

    job.estimated_cost = _estimated_cost(settings, verifier)
    job.scan.estimated_cost = job.estimated_cost
    logger.info(
        "duplicates.restaurant_job restaurants=%d cities=%d verified=%d saved=%d dry_run=%s total_ms=%.2f",
        job.scan.records_scanned,
        job.scan.groups_scanned,
        job.scan.pairs_verified,
        job.saved,
        dry_run,
        (perf_counter() - started) * 1000.0,
    )
    return job


def _follow(merged_into: dict[str, str], record_id: str) -> str:
    seen: set[str] = set()
    while record_id in merged_into and record_id not in seen:
        seen.add(record_id)
        record_id = merged_into[record_id]
    return record_id


def _estimated_cost(
    settings: Settings | None,
    verifier: DuplicateVerifier,
    strategist: MergeStrategist | None = None,
) -> float:
    active = settings or get_settings()
    clients = [verifier.client]
    if strategist is not None and strategist.client is not verifier.client:
        clients.append(strategist.client)
    return sum(
        client.usage.estimated_cost(
            active.openai_input_cost_per_million,
            active.openai_output_cost_per_million,
        )
        for client in clients
    )
