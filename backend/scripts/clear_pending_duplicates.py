"""Delete pending duplicate candidates so the next scan starts clean.

Usage (from repo root):
    python backend/scripts/clear_pending_duplicates.py
    python backend/scripts/clear_pending_duplicates.py --entity-type restaurant
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.db.session import SessionLocal
from app.services.review import clear_pending_candidates


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Delete pending duplicate candidates.")
    parser.add_argument(
        "--entity-type",
        choices=["chef", "restaurant"],
        default=None,
        help="Only clear candidates of this type (default: all).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    with SessionLocal() as db:
        deleted = clear_pending_candidates(db, args.entity_type)
    print(f"deleted_pending={deleted}")


if __name__ == "__main__":
    main()
