"""Service-level tests for the batch duplicate jobs behind the scripts."""

from __future__ import annotations

import json
import unittest

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.duplicates.strategist import MergeStrategist
from app.duplicates.verifier import DuplicateVerifier
from app.llm.client import TokenUsage
from app.models.base import Base
from app.models.chef import Chef
from app.models.chef_show import ChefShow
from app.models.data_change import DataChange
from app.models.duplicate_candidate import DuplicateCandidate
from app.models.pending_discovery import PendingDiscovery
from app.models.restaurant import Restaurant
from app.models.show import Show
from app.services.duplicate_jobs import run_chef_duplicate_job, run_restaurant_duplicate_job


class _VerifierClient:
    def __init__(self, confidence: float = 0.95) -> None:
        self.confidence = confidence
        self.usage = TokenUsage()

    def complete_json(self, system_prompt, user_prompt, *, max_tokens=None):  # noqa: ANN001
        _ = system_prompt, user_prompt, max_tokens
        self.usage.add(1000, 100)
        return {"isDuplicate": True, "confidence": self.confidence, "reasoning": "Same record."}


class _KeepFirstStrategistClient:
    """Keeps chef A and its fields."""

    def __init__(self, keeper_override: str | None = None) -> None:
        self.keeper_override = keeper_override
        self.usage = TokenUsage()

    def complete_json(self, system_prompt, user_prompt, *, max_tokens=None):  # noqa: ANN001
        _ = system_prompt, max_tokens
        chef_a = json.loads(user_prompt)["chef_a"]
        return {
            "keeperId": self.keeper_override or chef_a["id"],
            "mergedData": {
                "name": chef_a["name"],
                "slug": chef_a["slug"],
                "mini_bio": chef_a["mini_bio"],
                "photo_url": None,
                "instagram_handle": None,
                "james_beard_status": None,
                "chef_shows": [],
            },
            "reasoning": "Keep the first record.",
        }


class DuplicateJobTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        for model in (DataChange, DuplicateCandidate, PendingDiscovery, ChefShow, Restaurant, Show, Chef):
            self.db.execute(delete(model))
        self.db.commit()
        self.settings = Settings(openai_input_cost_per_million=1.0, openai_output_cost_per_million=2.0)

    def tearDown(self) -> None:
        self.db.close()

    def _seed_chefs(self, *names: str) -> None:
        for index, name in enumerate(names):
            self.db.add(Chef(id=f"chef-{chr(ord('a') + index)}", name=name, slug=f"chef-{index}"))
        self.db.commit()

    def _run_chefs(self, strategist_client, *, dry_run: bool = False):  # noqa: ANN001, ANN202
        return run_chef_duplicate_job(
            self.db,
            DuplicateVerifier(_VerifierClient()),
            MergeStrategist(strategist_client),
            min_similarity=0.7,
            min_confidence=0.9,
            dry_run=dry_run,
            pause_seconds=0,
            settings=self.settings,
        )

    def test_chef_job_merges_confirmed_pairs(self) -> None:
        self._seed_chefs("Joe Flamm", "Joe Flamm", "Stephanie Izard")

        job = self._run_chefs(_KeepFirstStrategistClient())

        self.assertEqual(job.scan.pairs_verified, 1)
        self.assertEqual(len(job.merged), 1)
        self.assertEqual(job.failures, [])
        self.assertIsNone(self.db.get(Chef, "chef-b"))
        self.assertIsNotNone(self.db.get(Chef, "chef-c"))
        # one verifier call: 1000 * 1.0 / 1e6 + 100 * 2.0 / 1e6
        self.assertAlmostEqual(job.estimated_cost, 0.0012)

    def test_chef_job_dry_run_writes_nothing(self) -> None:
        self._seed_chefs("Joe Flamm", "Joe Flamm")

        job = self._run_chefs(_KeepFirstStrategistClient(), dry_run=True)

        self.assertTrue(job.dry_run)
        self.assertTrue(job.pairs[0].report.dry_run)
        self.assertIsNotNone(self.db.get(Chef, "chef-b"))
        self.assertEqual(self.db.scalars(select(DataChange)).all(), [])

    def test_chef_job_records_failures_and_continues(self) -> None:
        self._seed_chefs("Joe Flamm", "Joe Flamm")

        job = self._run_chefs(_KeepFirstStrategistClient(keeper_override="chef-zzz"))

        self.assertEqual(len(job.failures), 1)
        self.assertIn("chef-zzz", job.failures[0].error)
        self.assertIsNotNone(self.db.get(Chef, "chef-b"))

    def test_chef_job_follows_earlier_merges(self) -> None:
        self._seed_chefs("Joe Flamm", "Joe Flamm", "Joe Flamm")

        job = self._run_chefs(_KeepFirstStrategistClient())

        self.assertEqual(len(job.pairs), 3)
        self.assertEqual(len(job.merged), 2)
        self.assertEqual([pair.skipped for pair in job.pairs if pair.skipped], ["already merged"])
        self.assertEqual([chef.id for chef in self.db.scalars(select(Chef)).all()], ["chef-a"])

    def test_restaurant_job_replaces_pending_candidates(self) -> None:
        self._seed_chefs("Joe Flamm")
        self.db.add_all(
            [
                Restaurant(id="r1", chef_id="chef-a", name="Aba", slug="aba-chicago", city="Chicago", state="IL"),
                Restaurant(id="r2", chef_id="chef-a", name="Aba Chicago", slug="aba-chicago-2", city="Chicago", state="IL"),
                Restaurant(id="r3", chef_id="chef-a", name="Aba", slug="aba-austin", city="Austin", state="TX"),
                DuplicateCandidate(
                    group_id="stale",
                    entity_type="restaurant",
                    record_ids_json=["r1", "r3"],
                    similarity=1.0,
                    confidence=0.9,
                ),
            ]
        )
        self.db.commit()

        job = run_restaurant_duplicate_job(
            self.db,
            DuplicateVerifier(_VerifierClient(confidence=0.88)),
            min_similarity=0.7,
            min_confidence=0.85,
            pause_seconds=0,
            settings=self.settings,
        )

        self.assertEqual(job.cleared, 1)
        self.assertEqual(job.saved, 1)
        self.assertEqual(job.scan.groups_scanned, 1)
        rows = list(self.db.scalars(select(DuplicateCandidate)).all())
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].record_ids_json, ["r1", "r2"])
        self.assertEqual(rows[0].status, "pending")
        self.assertAlmostEqual(job.scan.estimated_cost, 0.0012)

    def test_restaurant_job_dry_run_keeps_existing_candidates(self) -> None:
        self._seed_chefs("Joe Flamm")
        self.db.add_all(
            [
                Restaurant(id="r1", chef_id="chef-a", name="Aba", slug="aba-chicago", city="Chicago"),
                Restaurant(id="r2", chef_id="chef-a", name="Aba Chicago", slug="aba-chicago-2", city="Chicago"),
            ]
        )
        self.db.commit()

        job = run_restaurant_duplicate_job(
            self.db,
            DuplicateVerifier(_VerifierClient()),
            min_similarity=0.7,
            min_confidence=0.85,
            dry_run=True,
            pause_seconds=0,
            settings=self.settings,
        )

        self.assertEqual(len(job.scan.candidates), 1)
        self.assertEqual(job.saved, 0)
        self.assertEqual(self.db.scalars(select(DuplicateCandidate)).all(), [])


if __name__ == "__main__":
    unittest.main()
