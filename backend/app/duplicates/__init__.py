"""Duplicate detection and merge planning package."""

from app.duplicates.scanner import (
    CandidateScanner,
    DuplicatePair,
    PairOutcome,
    ScanReport,
    scan_chefs,
    scan_restaurants,
)
from app.duplicates.similarity import name_similarity
from app.duplicates.strategist import (
    ChefMergeDecision,
    MergeStrategist,
    MergeStrategyError,
    build_rule_based_decision,
)
from app.duplicates.types import ChefProfile, RestaurantProfile, ShowAppearance
from app.duplicates.verifier import DuplicateVerifier, VerificationResult

__all__ = [
    "CandidateScanner",
    "ChefMergeDecision",
    "ChefProfile",
    "DuplicatePair",
    "DuplicateVerifier",
    "MergeStrategist",
    "MergeStrategyError",
    "PairOutcome",
    "RestaurantProfile",
    "ScanReport",
    "ShowAppearance",
    "VerificationResult",
    "build_rule_based_decision",
    "name_similarity",
    "scan_chefs",
    "scan_restaurants",
]
