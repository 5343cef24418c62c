"""Initial schema"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "households",
        *_base_columns(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("active_menu_id", sa.String(length=36)),
    )
    op.create_index("ix_households_active_menu_id", "households", ["active_menu_id"])

    op.create_table(
        "food_items",
        *_base_columns(),
        sa.Column("household_id", sa.String(length=36), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("image_url", sa.String(length=1024)),
        sa.Column("tags", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("legacy_id", sa.String(length=64)),
    )
    op.create_index("ix_food_items_household_id", "food_items", ["household_id"])
    op.create_index("ix_food_items_legacy_id", "food_items", ["legacy_id"])

    op.create_table(
        "kid_profiles",
        *_base_columns(),
        sa.Column("household_id", sa.String(length=36), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("avatar_color", sa.String(length=32), nullable=False),
        sa.Column("avatar_animal", sa.String(length=64)),
        sa.Column("legacy_id", sa.String(length=64)),
    )
    op.create_index("ix_kid_profiles_household_id", "kid_profiles", ["household_id"])
    op.create_index("ix_kid_profiles_legacy_id", "kid_profiles", ["legacy_id"])

    op.create_table(
        "menus",
        *_base_columns(),
        sa.Column("household_id", sa.String(length=36), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("groups", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("preset_slot", sa.String(length=16)),
        sa.Column("legacy_id", sa.String(length=64)),
    )
    op.create_index("ix_menus_household_id", "menus", ["household_id"])
    op.create_index("ix_menus_legacy_id", "menus", ["legacy_id"])

    op.create_table(
        "kid_selections",
        *_base_columns(),
        sa.Column("household_id", sa.String(length=36), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kid_id", sa.String(length=36), sa.ForeignKey("kid_profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("selections", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.UniqueConstraint("household_id", "kid_id", name="uq_kid_selections_household_kid"),
    )

    op.create_table(
        "meal_records",
        *_base_columns(),
        sa.Column("household_id", sa.String(length=36), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("menu_id", sa.String(length=36), sa.ForeignKey("menus.id", ondelete="SET NULL")),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("legacy_id", sa.String(length=64)),
    )
    op.create_index("ix_meal_records_household_id", "meal_records", ["household_id"])
    op.create_index("ix_meal_records_legacy_id", "meal_records", ["legacy_id"])

    op.create_table(
        "meal_selections",
        *_base_columns(),
        sa.Column("meal_id", sa.String(length=36), sa.ForeignKey("meal_records.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kid_id", sa.String(length=36), sa.ForeignKey("kid_profiles.id", ondelete="SET NULL")),
        sa.Column("kid_name", sa.String(length=128), nullable=False),
        sa.Column("selections", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_meal_selections_meal_id", "meal_selections", ["meal_id"])

    op.create_table(
        "meal_reviews",
        *_base_columns(),
        sa.Column("meal_id", sa.String(length=36), sa.ForeignKey("meal_records.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kid_id", sa.String(length=36), sa.ForeignKey("kid_profiles.id", ondelete="SET NULL")),
        sa.Column("kid_name", sa.String(length=128), nullable=False),
        sa.Column("completions", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("earned_star", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_meal_reviews_meal_id", "meal_reviews", ["meal_id"])

    op.create_table(
        "shared_menus",
        *_base_columns(),
        sa.Column("household_id", sa.String(length=36), sa.ForeignKey("households.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("groups", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("legacy_id", sa.String(length=64)),
    )
    op.create_index("ix_shared_menus_household_id", "shared_menus", ["household_id"])
    op.create_index("ix_shared_menus_token", "shared_menus", ["token"], unique=True)
    op.create_index("ix_shared_menus_legacy_id", "shared_menus", ["legacy_id"])

    op.create_table(
        "shared_menu_responses",
        *_base_columns(),
        sa.Column("menu_id", sa.String(length=36), sa.ForeignKey("shared_menus.id", ondelete="CASCADE"), nullable=False),
        sa.Column("respondent_name", sa.String(length=128), nullable=False),
        sa.Column("selections", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("legacy_id", sa.String(length=64)),
    )
    op.create_index("ix_shared_menu_responses_menu_id", "shared_menu_responses", ["menu_id"])
    op.create_index("ix_shared_menu_responses_legacy_id", "shared_menu_responses", ["legacy_id"])


def downgrade() -> None:
    op.drop_table("shared_menu_responses")
    op.drop_table("shared_menus")
    op.drop_table("meal_reviews")
    op.drop_table("meal_selections")
    op.drop_table("meal_records")
    op.drop_table("kid_selections")
    op.drop_table("menus")
    op.drop_table("kid_profiles")
    op.drop_table("food_items")
    op.drop_table("households")
