"""Unit tests for audit entry validation and storage."""

from __future__ import annotations

import unittest

from pydantic import ValidationError
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.base import Base
from app.models.data_change import DataChange
from app.schemas.data_change import DataChangeCreate, DataChangeRead
from app.services.audit import list_data_changes, log_data_change


class AuditLogTests(unittest.TestCase):
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
        self.db.execute(delete(DataChange))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_entry_validation(self) -> None:
        entry = DataChangeCreate(
            table_name="  chefs ",
            record_id="chef-1",
            change_type="update",
            source="manual_edit",
            confidence=1.0,
        )
        self.assertEqual(entry.table_name, "chefs")

        invalid = [
            {"table_name": "chefs", "change_type": "upsert", "source": "manual_edit"},
            {"table_name": "chefs", "change_type": "update", "source": "cron"},
            {"table_name": "chefs", "change_type": "update", "source": "manual_edit", "confidence": 1.2},
            {"table_name": "chefs", "change_type": "update", "source": "manual_edit", "confidence": -0.1},
            {"table_name": "   ", "change_type": "update", "source": "manual_edit"},
        ]
        for payload in invalid:
            with self.assertRaises(ValidationError, msg=str(payload)):
                DataChangeCreate.model_validate(payload)

    def test_entries_join_the_caller_transaction(self) -> None:
        log_data_change(
            self.db,
            DataChangeCreate(table_name="chefs", record_id="chef-1", change_type="delete", source="human_review"),
        )
        self.db.rollback()
        self.assertEqual(self.db.scalar(select(func.count(DataChange.id))), 0)

        row = log_data_change(
            self.db,
            DataChangeCreate(
                table_name="chefs",
                record_id="chef-1",
                change_type="update",
                old_data={"name": "Joe"},
                new_data={"name": "Joe Flamm"},
                source="automated_pipeline",
                confidence=0.93,
            ),
        )
        self.db.commit()

        read = DataChangeRead.model_validate(row)
        self.assertEqual(read.old_data_json, {"name": "Joe"})
        self.assertEqual(read.new_data_json, {"name": "Joe Flamm"})
        self.assertEqual(read.confidence, 0.93)

    def test_list_filters_and_limit(self) -> None:
        for index in range(3):
            log_data_change(
                self.db,
                DataChangeCreate(
                    table_name="restaurants",
                    record_id=f"r-{index}",
                    change_type="update",
                    source="human_review",
                ),
            )
        log_data_change(
            self.db,
            DataChangeCreate(table_name="chefs", record_id="chef-1", change_type="insert", source="admin_approval"),
        )
        self.db.commit()

        self.assertEqual(len(list_data_changes(self.db)), 4)
        self.assertEqual(len(list_data_changes(self.db, table_name="restaurants")), 3)
        self.assertEqual([row.record_id for row in list_data_changes(self.db, record_id="r-1")], ["r-1"])
        self.assertEqual(len(list_data_changes(self.db, limit=2)), 2)


if __name__ == "__main__":
    unittest.main()
