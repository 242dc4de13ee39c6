"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "chefs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("mini_bio", sa.Text(), nullable=True),
        sa.Column("photo_url", sa.String(length=1024), nullable=True),
        sa.Column("instagram_handle", sa.String(length=128), nullable=True),
        sa.Column("james_beard_status", sa.String(length=32), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("protected", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chefs_slug", "chefs", ["slug"], unique=True)

    op.create_table(
        "shows",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_shows_slug", "shows", ["slug"], unique=True)

    op.create_table(
        "restaurants",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("chef_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=False, server_default="US"),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("google_place_id", sa.String(length=255), nullable=True),
        sa.Column("google_rating", sa.Float(), nullable=True),
        sa.Column("google_review_count", sa.Integer(), nullable=True),
        sa.Column("photo_urls_json", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="unknown"),
        sa.Column("price_tier", sa.String(length=4), nullable=True),
        sa.Column("website_url", sa.String(length=1024), nullable=True),
        sa.Column("chef_role", sa.String(length=32), nullable=False, server_default="owner"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("protected", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_source", sa.String(length=128), nullable=True),
        sa.Column("source_notes", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["chef_id"], ["chefs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_restaurants_chef_id", "restaurants", ["chef_id"], unique=False)
    op.create_index("ix_restaurants_slug", "restaurants", ["slug"], unique=True)
    op.create_index("ix_restaurants_city_state", "restaurants", ["city", "state"], unique=False)

    op.create_table(
        "chef_shows",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("chef_id", sa.String(length=36), nullable=False),
        sa.Column("show_id", sa.String(length=36), nullable=False),
        sa.Column("season", sa.String(length=50), nullable=True),
        sa.Column("season_name", sa.String(length=255), nullable=True),
        sa.Column("result", sa.String(length=16), nullable=False, server_default="contestant"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("performance_blurb", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["chef_id"], ["chefs.id"]),
        sa.ForeignKeyConstraint(["show_id"], ["shows.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chef_shows_chef_id", "chef_shows", ["chef_id"], unique=False)
    op.create_index("ix_chef_shows_show_id", "chef_shows", ["show_id"], unique=False)
    op.create_index(
        "uq_chef_shows_chef_show_season",
        "chef_shows",
        ["chef_id", "show_id", sa.text("coalesce(season, '')")],
        unique=True,
    )

    op.create_table(
        "duplicate_candidates",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("group_id", sa.String(length=36), nullable=False),
        sa.Column("entity_type", sa.String(length=16), nullable=False),
        sa.Column("record_ids_json", sa.JSON(), nullable=False),
        sa.Column("similarity", sa.Float(), nullable=False, server_default=sa.text("0.0")),
        sa.Column("confidence", sa.Float(), nullable=False, server_default=sa.text("0.0")),
        sa.Column("reasoning", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(length=255), nullable=True),
        sa.Column("merged_into", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'merged', 'rejected', 'needs_review')",
            name="ck_duplicate_candidates_status",
        ),
        sa.CheckConstraint("entity_type IN ('chef', 'restaurant')", name="ck_duplicate_candidates_entity_type"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_duplicate_candidates_group_id", "duplicate_candidates", ["group_id"], unique=False)
    op.create_index("ix_duplicate_candidates_entity_type", "duplicate_candidates", ["entity_type"], unique=False)
    op.create_index("ix_duplicate_candidates_status", "duplicate_candidates", ["status"], unique=False)

    op.create_table(
        "pending_discoveries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("discovery_type", sa.String(length=16), nullable=False),
        sa.Column("source_chef_id", sa.String(length=36), nullable=True),
        sa.Column("source_chef_name", sa.String(length=200), nullable=True),
        sa.Column("data_json", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["source_chef_id"], ["chefs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pending_discoveries_source_chef_id", "pending_discoveries", ["source_chef_id"], unique=False)
    op.create_index("ix_pending_discoveries_status", "pending_discoveries", ["status"], unique=False)

    op.create_table(
        "data_changes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("record_id", sa.String(length=36), nullable=True),
        sa.Column("change_type", sa.String(length=16), nullable=False),
        sa.Column("old_data_json", sa.JSON(), nullable=True),
        sa.Column("new_data_json", sa.JSON(), nullable=True),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("change_type IN ('insert', 'update', 'delete')", name="ck_data_changes_change_type"),
        sa.CheckConstraint(
            "source IN ('automated_pipeline', 'human_review', 'manual_edit', 'admin_approval')",
            name="ck_data_changes_source",
        ),
        sa.CheckConstraint(
            "confidence IS NULL OR (confidence >= 0 AND confidence <= 1)",
            name="ck_data_changes_confidence",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_data_changes_table_name", "data_changes", ["table_name"], unique=False)
    op.create_index("ix_data_changes_record_id", "data_changes", ["record_id"], unique=False)
    op.create_index("ix_data_changes_created_at", "data_changes", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_data_changes_created_at", table_name="data_changes")
    op.drop_index("ix_data_changes_record_id", table_name="data_changes")
    op.drop_index("ix_data_changes_table_name", table_name="data_changes")
    op.drop_table("data_changes")

    op.drop_index("ix_pending_discoveries_status", table_name="pending_discoveries")
    op.drop_index("ix_pending_discoveries_source_chef_id", table_name="pending_discoveries")
    op.drop_table("pending_discoveries")

    op.drop_index("ix_duplicate_candidates_status", table_name="duplicate_candidates")
    op.drop_index("ix_duplicate_candidates_entity_type", table_name="duplicate_candidates")
    op.drop_index("ix_duplicate_candidates_group_id", table_name="duplicate_candidates")
    op.drop_table("duplicate_candidates")

    op.drop_index("uq_chef_shows_chef_show_season", table_name="chef_shows")
    op.drop_index("ix_chef_shows_show_id", table_name="chef_shows")
    op.drop_index("ix_chef_shows_chef_id", table_name="chef_shows")
    op.drop_table("chef_shows")

    op.drop_index("ix_restaurants_city_state", table_name="restaurants")
    op.drop_index("ix_restaurants_slug", table_name="restaurants")
    op.drop_index("ix_restaurants_chef_id", table_name="restaurants")
    op.drop_table("restaurants")

    op.drop_index("ix_shows_slug", table_name="shows")
    op.drop_table("shows")

    op.drop_index("ix_chefs_slug", table_name="chefs")
    op.drop_table("chefs")
