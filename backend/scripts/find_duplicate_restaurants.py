"""Scan public restaurants city by city and queue likely duplicates for review.

Usage (from repo root):
    python backend/scripts/find_duplicate_restaurants.py
    python backend/scripts/find_duplicate_restaurants.py --dry-run --min-confidence=0.9

Usage (from backend/):
    python scripts/find_duplicate_restaurants.py
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.config import ConfigError, get_settings
from app.db.session import SessionLocal
from app.duplicates.verifier import DuplicateVerifier
from app.llm.client import get_default_llm_client
from app.services.duplicate_jobs import run_restaurant_duplicate_job

logger = logging.getLogger("scripts.find_duplicate_restaurants")


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    settings = get_settings()
    parser = argparse.ArgumentParser(description="Find likely duplicate restaurants and queue them for review.")
    parser.add_argument(
        "--min-confidence",
        type=float,
        default=settings.restaurant_duplicate_min_confidence,
        help=f"Verifier confidence needed to queue a pair (default: {settings.restaurant_duplicate_min_confidence})",
    )
    parser.add_argument(
        "--min-similarity",
        type=float,
        default=settings.restaurant_duplicate_min_similarity,
        help=f"Name similarity needed to ask the verifier (default: {settings.restaurant_duplicate_min_similarity})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report candidates without saving them.")
    return parser.parse_args()


def main() -> int:
    """Run the restaurant scan; returns the process exit code."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = parse_args()
    settings = get_settings()
    try:
        verifier = DuplicateVerifier(get_default_llm_client(model=settings.openai_verifier_model, settings=settings))
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    try:
        with SessionLocal() as db:
            job = run_restaurant_duplicate_job(
                db,
                verifier,
                min_similarity=args.min_similarity,
                min_confidence=args.min_confidence,
                dry_run=args.dry_run,
                pause_seconds=settings.duplicate_verifier_pause_seconds,
                settings=settings,
            )
    except Exception:
        logger.exception("Restaurant duplicate scan failed")
        return 1

    scan = job.scan
    print("Scan complete")
    print(f"restaurants_scanned={scan.records_scanned}")
    print(f"cities_scanned={scan.groups_scanned}")
    print(f"pairs_verified={scan.pairs_verified}")
    print(f"verifier_failures={len(scan.failures)}")
    print(f"duplicates_found={len(scan.candidates)}")
    for pair in scan.candidates:
        print(
            f'  "{pair.left.name}" <-> "{pair.right.name}" in {pair.left.city} '
            f"(similarity {pair.similarity:.2f}, confidence {pair.confidence:.2f})"
        )
    if job.dry_run:
        print("mode=DRY RUN (nothing saved)")
    else:
        print(f"cleared_pending={job.cleared}")
        print(f"saved_pending={job.saved}")
    print(f"estimated_cost_usd={job.estimated_cost:.4f}")
    print()
    print("Review:")
    print("  GET /admin/duplicates?entity_type=restaurant")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
