"""Route and service tests for staged discovery approval."""

from __future__ import annotations

import unittest

from fastapi import HTTPException
from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.base import Base
from app.models.chef import Chef
from app.models.chef_show import ChefShow
from app.models.data_change import DataChange
from app.models.pending_discovery import PendingDiscovery
from app.models.restaurant import Restaurant
from app.models.show import Show
from app.routers.discoveries import post_approve_discovery
from app.schemas.discoveries import ApproveRequest
from app.services.discoveries import resolve_show


class DiscoveryApprovalTests(unittest.TestCase):
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
        for model in (DataChange, PendingDiscovery, ChefShow, Restaurant, Show, Chef):
            self.db.execute(delete(model))
        self.db.commit()
        self.db.add_all(
            [
                Chef(id="chef-a", name="Joe Flamm", slug="joe-flamm"),
                Show(id="show-hk", name="Hell's Kitchen", slug="hells-kitchen"),
                Show(id="show-gbbo", name="The Great Food Truck Race", slug="great-food-truck-race"),
            ]
        )
        self.db.flush()
        self.db.add(Restaurant(id="r-rose", chef_id="chef-a", name="Rose Mary", slug="rose-mary-chicago", city="Chicago"))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def _discovery(self, discovery_type: str, data: dict, *, chef_id: str | None = "chef-a") -> str:
        discovery = PendingDiscovery(discovery_type=discovery_type, source_chef_id=chef_id, data_json=data)
        self.db.add(discovery)
        self.db.commit()
        return discovery.id

    def _approve(self, discovery_id: str, action: str = "approve"):  # noqa: ANN202
        return post_approve_discovery(ApproveRequest(id=discovery_id, action=action, reviewed_by="admin-1"), db=self.db).data

    def test_new_restaurant_gets_unique_slug_and_whitelisted_fields(self) -> None:
        discovery_id = self._discovery(
            "restaurant",
            {"name": "Rose Mary", "city": "Chicago", "state": "IL", "price_range": "$$$", "ownership": "chef-owner"},
        )

        result = self._approve(discovery_id)

        created = self.db.get(Restaurant, result.entity_id)
        self.assertEqual(created.slug, "rose-mary-chicago-2")
        self.assertEqual(created.price_tier, "$$$")
        self.assertEqual(created.chef_role, "owner")
        self.assertEqual(created.country, "US")
        self.assertEqual(created.status, "unknown")
        discovery = self.db.get(PendingDiscovery, discovery_id)
        self.assertEqual(discovery.status, "merged")
        self.assertEqual(discovery.reviewed_by, "admin-1")
        audit = self.db.scalar(select(DataChange).where(DataChange.record_id == created.id))
        self.assertEqual(audit.change_type, "insert")
        self.assertEqual(audit.source, "admin_approval")

    def test_not_found_marks_restaurant_closed(self) -> None:
        discovery_id = self._discovery(
            "restaurant",
            {"action": "not_found_by_llm", "restaurant_id": "r-rose", "restaurant_name": "Rose Mary"},
        )

        result = self._approve(discovery_id)

        self.assertEqual(result.message, 'Marked "Rose Mary" as closed')
        restaurant = self.db.get(Restaurant, "r-rose")
        self.assertEqual(restaurant.status, "closed")
        self.assertEqual(restaurant.verification_source, "admin_review_not_found_by_llm")
        self.assertIsNotNone(restaurant.last_verified_at)

    def test_potential_duplicate_keeps_existing(self) -> None:
        discovery_id = self._discovery(
            "restaurant",
            {
                "action": "potential_duplicate",
                "existing_restaurant": {"id": "r-rose", "name": "Rose Mary"},
                "new_restaurant": {"name": "Rosemary", "city": "Chicago"},
            },
        )

        result = self._approve(discovery_id)

        self.assertEqual(result.entity_id, "r-rose")
        self.assertEqual(len(self.db.scalars(select(Restaurant)).all()), 1)

    def test_show_link_via_known_name_and_existing_link(self) -> None:
        discovery_id = self._discovery("show", {"showName": "hells kitchen", "season": "Season 7", "result": "runner-up"})

        result = self._approve(discovery_id)

        link = self.db.get(ChefShow, result.entity_id)
        self.assertEqual(link.show_id, "show-hk")
        self.assertEqual(link.result, "contestant")
        self.assertEqual(link.season_name, "hells kitchen Season 7")
        self.assertFalse(link.is_primary)

        again = self._approve(self._discovery("show", {"name": "Hell's Kitchen", "season": "Season 7"}))
        self.assertEqual(again.entity_id, link.id)
        self.assertTrue(again.message.startswith("Chef already linked"))
        self.assertEqual(len(self.db.scalars(select(ChefShow)).all()), 1)

    def test_show_resolves_by_case_insensitive_name(self) -> None:
        self.assertEqual(resolve_show(self.db, "the great food truck race").id, "show-gbbo")
        self.assertIsNone(resolve_show(self.db, "Top Chef"))

    def test_unknown_show_moves_discovery_to_needs_review(self) -> None:
        discovery_id = self._discovery("show", {"showName": "Top Chef", "season": "Season 15"})

        with self.assertRaises(HTTPException) as ctx:
            self._approve(discovery_id)

        self.assertEqual(ctx.exception.status_code, 400)
        discovery = self.db.get(PendingDiscovery, discovery_id)
        self.assertEqual(discovery.status, "needs_review")
        self.assertEqual(discovery.error_message, 'Show "Top Chef" not found in database')
        self.assertEqual(self.db.scalars(select(ChefShow)).all(), [])

    def test_invalid_payloads_need_review(self) -> None:
        cases = [
            ("restaurant", {"name": "", "city": "Chicago"}, "chef-a"),
            ("restaurant", {"name": "Galit", "city": "Chicago"}, None),
            ("show", {"season": "3"}, "chef-a"),
            ("chef", {"name": ""}, None),
        ]
        for discovery_type, data, chef_id in cases:
            discovery_id = self._discovery(discovery_type, data, chef_id=chef_id)
            with self.assertRaises(HTTPException, msg=str(data)):
                self._approve(discovery_id)
            self.assertEqual(self.db.get(PendingDiscovery, discovery_id).status, "needs_review", data)
        self.assertEqual(self.db.scalars(select(DataChange)).all(), [])

    def test_chef_creation_and_existing_slug(self) -> None:
        created = self._approve(self._discovery("chef", {"name": "Stephanie Izard"}, chef_id=None))
        self.assertEqual(self.db.get(Chef, created.entity_id).slug, "stephanie-izard")

        existing = self._approve(self._discovery("chef", {"name": "Joe Flamm"}, chef_id=None))
        self.assertEqual(existing.entity_id, "chef-a")
        self.assertEqual(existing.message, 'Chef "Joe Flamm" already exists')

    def test_reject_and_missing_discovery(self) -> None:
        discovery_id = self._discovery("chef", {"name": "Stephanie Izard"}, chef_id=None)

        result = self._approve(discovery_id, action="reject")

        self.assertEqual(result.message, "Discovery rejected")
        self.assertEqual(self.db.get(PendingDiscovery, discovery_id).status, "rejected")
        self.assertIsNone(self.db.scalar(select(Chef).where(Chef.slug == "stephanie-izard")))

        with self.assertRaises(HTTPException) as ctx:
            self._approve("does-not-exist")
        self.assertEqual(ctx.exception.status_code, 404)

        with self.assertRaises(HTTPException) as ctx:
            self._approve(discovery_id)
        self.assertEqual(ctx.exception.status_code, 400)


if __name__ == "__main__":
    unittest.main()
