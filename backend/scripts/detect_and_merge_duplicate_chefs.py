"""Find duplicate chef records, plan each merge with the LLM, and apply it.

Usage (from repo root):
    python backend/scripts/detect_and_merge_duplicate_chefs.py --dry-run
    python backend/scripts/detect_and_merge_duplicate_chefs.py --min-confidence=0.95

Usage (from backend/):
    python scripts/detect_and_merge_duplicate_chefs.py
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
from app.duplicates.strategist import MergeStrategist
from app.duplicates.verifier import DuplicateVerifier
from app.llm.client import get_default_llm_client
from app.llm.search import get_default_search_client
from app.services.duplicate_jobs import ChefJobReport, run_chef_duplicate_job

logger = logging.getLogger("scripts.detect_and_merge_duplicate_chefs")


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    settings = get_settings()
    parser = argparse.ArgumentParser(description="Detect and merge duplicate chef records.")
    parser.add_argument("--dry-run", action="store_true", help="Plan merges without writing anything.")
    parser.add_argument(
        "--min-confidence",
        type=float,
        default=settings.chef_duplicate_min_confidence,
        help=f"Verifier confidence needed to merge (default: {settings.chef_duplicate_min_confidence})",
    )
    parser.add_argument(
        "--min-similarity",
        type=float,
        default=settings.chef_duplicate_min_similarity,
        help=f"Name similarity needed to ask the verifier (default: {settings.chef_duplicate_min_similarity})",
    )
    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Print each merge plan in full before it is applied.",
    )
    return parser.parse_args()


def print_report(job: ChefJobReport, *, interactive: bool) -> None:
    scan = job.scan
    print(f"chefs_scanned={scan.records_scanned}")
    print(f"pairs_verified={scan.pairs_verified}")
    print(f"verifier_failures={len(scan.failures)}")
    print(f"duplicates_confirmed={len(scan.candidates)}")
    for pair in job.pairs:
        print()
        print("=" * 80)
        print(f'DUPLICATE: "{pair.left_name}" <-> "{pair.right_name}" (confidence {pair.confidence:.2f})')
        if pair.skipped:
            print(f"  skipped: {pair.skipped}")
            continue
        if pair.error:
            print(f"  FAILED: {pair.error}")
            continue
        if pair.decision is not None:
            print(f"  keeper={pair.decision.keeper_id} loser={pair.decision.loser_id}")
            print(f"  {pair.decision.reasoning}")
            if interactive:
                for show in pair.decision.shows:
                    primary = " (primary)" if show.is_primary else ""
                    season = f" {show.season}" if show.season else ""
                    print(f"    - {show.show_name}{season}: {show.result or 'contestant'}{primary}")
        if pair.report is not None:
            verb = "would transfer" if pair.report.dry_run else "transferred"
            print(
                f"  {verb} restaurants={pair.report.restaurants_transferred} "
                f"shows={pair.report.shows_inserted}"
            )

    print()
    print("Processing complete")
    print(f"merged={len(job.merged)}")
    print(f"failed={len(job.failures)}")
    print(f"mode={'DRY RUN (no changes made)' if job.dry_run else 'LIVE (changes applied)'}")
    print(f"estimated_cost_usd={job.estimated_cost:.4f}")


def main() -> int:
    """Run the chef duplicate job; returns the process exit code."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = parse_args()
    settings = get_settings()
    try:
        verifier = DuplicateVerifier(
            get_default_llm_client(model=settings.openai_verifier_model, settings=settings),
            search_client=get_default_search_client(settings),
        )
        strategist = MergeStrategist(get_default_llm_client(settings=settings))
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    print(f"mode={'DRY RUN' if args.dry_run else 'LIVE'}")
    print(f"min_confidence={args.min_confidence}")
    print(f"min_similarity={args.min_similarity}")
    print(f"interactive={args.interactive}")
    try:
        with SessionLocal() as db:
            job = run_chef_duplicate_job(
                db,
                verifier,
                strategist,
                min_similarity=args.min_similarity,
                min_confidence=args.min_confidence,
                dry_run=args.dry_run,
                pause_seconds=settings.duplicate_verifier_pause_seconds,
                settings=settings,
            )
    except Exception:
        logger.exception("Chef duplicate job failed")
        return 1

    print_report(job, interactive=args.interactive)
    return 1 if job.failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
