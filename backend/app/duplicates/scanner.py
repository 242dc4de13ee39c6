"""Pairwise duplicate candidate scanning."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from time import perf_counter
from typing import Generic, TypeVar

from app.duplicates.similarity import name_similarity
from app.duplicates.types import ChefProfile, RestaurantProfile
from app.duplicates.verifier import DuplicateVerifier, VerificationResult

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", ChefProfile, RestaurantProfile)


@dataclass
class DuplicatePair(Generic[RecordT]):
    """A verified duplicate candidate pair."""

    left: RecordT
    right: RecordT
    similarity: float
    confidence: float
    reasoning: str

    @property
    def record_ids(self) -> list[str]:
        return [self.left.id, self.right.id]


@dataclass(slots=True)
class PairOutcome:
    """Verifier outcome for one pair that passed the similarity filter."""

    left_id: str
    right_id: str
    similarity: float
    result: VerificationResult
    confirmed: bool


@dataclass
class ScanReport(Generic[RecordT]):
    """Everything one scan observed, including per-pair failures."""

    records_scanned: int = 0
    groups_scanned: int = 0
    pairs_considered: int = 0
    outcomes: list[PairOutcome] = field(default_factory=list)
    candidates: list[DuplicatePair[RecordT]] = field(default_factory=list)
    estimated_cost: float = 0.0

    @property
    def pairs_verified(self) -> int:
        return len(self.outcomes)

    @property
    def failures(self) -> list[PairOutcome]:
        return [outcome for outcome in self.outcomes if outcome.result.failed]


class CandidateScanner(Generic[RecordT]):
    """Score all pairs, verify the similar ones, keep confident duplicates.

    Pairs are processed one at a time and the scanner sleeps ``pause_seconds``
    between verifier calls to stay under provider rate limits.
    """

    def __init__(
        self,
        verify: Callable[[RecordT, RecordT], VerificationResult],
        *,
        min_similarity: float = 0.7,
        min_confidence: float = 0.9,
        pause_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not 0.0 <= min_similarity <= 1.0:
            raise ValueError("min_similarity must be between 0 and 1")
        if not 0.0 <= min_confidence <= 1.0:
            raise ValueError("min_confidence must be between 0 and 1")
        self._verify = verify
        self._min_similarity = min_similarity
        self._min_confidence = min_confidence
        self._pause_seconds = max(0.0, pause_seconds)
        self._sleep = sleep

    def scan(self, records: Sequence[RecordT]) -> ScanReport[RecordT]:
        """Scan one group of records and return the report."""

        report: ScanReport[RecordT] = ScanReport(records_scanned=len(records))
        self._scan_group(records, report)
        _sort_candidates(report)
        return report

    def scan_groups(self, groups: Sequence[Sequence[RecordT]]) -> ScanReport[RecordT]:
        """Scan several groups; records are only paired within their own group."""

        report: ScanReport[RecordT] = ScanReport()
        for group in groups:
            report.records_scanned += len(group)
            if len(group) < 2:
                continue
            self._scan_group(group, report)
        _sort_candidates(report)
        return report

    def _scan_group(self, records: Sequence[RecordT], report: ScanReport[RecordT]) -> None:
        report.groups_scanned += 1
        for i in range(len(records)):
            for j in range(i + 1, len(records)):
                left = records[i]
                right = records[j]
                report.pairs_considered += 1
                similarity = name_similarity(left.name, right.name)
                if similarity < self._min_similarity:
                    continue

                if report.outcomes and self._pause_seconds:
                    self._sleep(self._pause_seconds)
                started = perf_counter()
                result = self._verify(left, right)
                confirmed = (
                    not result.failed
                    and result.is_duplicate
                    and result.confidence >= self._min_confidence
                )
                report.outcomes.append(
                    PairOutcome(
                        left_id=left.id,
                        right_id=right.id,
                        similarity=similarity,
                        result=result,
                        confirmed=confirmed,
                    )
                )
                if result.failed:
                    logger.warning(
                        "duplicates.scan_pair_failed left=%r right=%r error=%s",
                        left.name,
                        right.name,
                        result.error,
                    )
                    continue
                logger.info(
                    "duplicates.scan_pair left=%r right=%r similarity=%.2f confidence=%.2f confirmed=%s verify_ms=%.2f",
                    left.name,
                    right.name,
                    similarity,
                    result.confidence,
                    confirmed,
                    (perf_counter() - started) * 1000.0,
                )
                if confirmed:
                    report.candidates.append(
                        DuplicatePair(
                            left=left,
                            right=right,
                            similarity=similarity,
                            confidence=result.confidence,
                            reasoning=result.reasoning,
                        )
                    )


def _sort_candidates(report: ScanReport) -> None:
    # Stable sort keeps scan order among equal confidences.
    report.candidates.sort(key=lambda pair: pair.confidence, reverse=True)


def group_restaurants_by_city(restaurants: Sequence[RestaurantProfile]) -> list[list[RestaurantProfile]]:
    """Group restaurants by (city, state), preserving input order."""

    grouped: dict[tuple[str, str], list[RestaurantProfile]] = {}
    for restaurant in restaurants:
        key = (restaurant.city.strip().lower(), (restaurant.state or "").strip().lower())
        grouped.setdefault(key, []).append(restaurant)
    return list(grouped.values())


def scan_restaurants(
    verifier: DuplicateVerifier,
    restaurants: Sequence[RestaurantProfile],
    *,
    min_similarity: float,
    min_confidence: float,
    pause_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> ScanReport[RestaurantProfile]:
    """Scan restaurants city by city."""

    scanner: CandidateScanner[RestaurantProfile] = CandidateScanner(
        verifier.verify_restaurants,
        min_similarity=min_similarity,
        min_confidence=min_confidence,
        pause_seconds=pause_seconds,
        sleep=sleep,
    )
    return scanner.scan_groups(group_restaurants_by_city(restaurants))


def scan_chefs(
    verifier: DuplicateVerifier,
    chefs: Sequence[ChefProfile],
    *,
    min_similarity: float,
    min_confidence: float,
    pause_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> ScanReport[ChefProfile]:
    """Scan all chefs as one group."""

    scanner: CandidateScanner[ChefProfile] = CandidateScanner(
        verifier.verify_chefs,
        min_similarity=min_similarity,
        min_confidence=min_confidence,
        pause_seconds=pause_seconds,
        sleep=sleep,
    )
    return scanner.scan(chefs)
