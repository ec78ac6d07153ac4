"""Create users, items and swap_requests tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema of the three stores: Identity (users), Catalog (items)
       and the Swap Ledger (swap_requests).
How:   Portable column types (sa.Uuid, sa.JSON) so the same migration runs
       on PostgreSQL and SQLite.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Lower-cased, unique"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("swap_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("location", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("join_date", sa.Date(), nullable=False, server_default=sa.text("CURRENT_DATE")),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        sa.CheckConstraint("swap_count >= 0", name="ck_users_swap_count_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("type", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("size", sa.String(50), nullable=False),
        sa.Column("condition", sa.String(50), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False, comment="Paths relative to STORAGE_ROOT"),
        sa.Column("uploader_id", sa.Uuid(), nullable=False),
        sa.Column("uploader_name", sa.String(100), nullable=False),
        sa.Column("uploader_avatar", sa.String(500), nullable=True),
        sa.Column("location", sa.String(200), nullable=False, server_default=sa.text("''")),
        sa.Column("points_value", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("upload_date", sa.Date(), nullable=False, server_default=sa.text("CURRENT_DATE")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["uploader_id"], ["users.id"]),
        sa.CheckConstraint("points_value > 0", name="ck_items_points_value_positive"),
    )
    op.create_index("ix_items_category", "items", ["category"])
    op.create_index("ix_items_uploader_id", "items", ["uploader_id"])
    op.create_index("idx_items_created_at", "items", ["created_at"])

    op.create_table(
        "swap_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("requester_id", sa.Uuid(), nullable=False),
        sa.Column("requester_name", sa.String(100), nullable=False),
        # No foreign keys on the item columns: history outlives deleted listings
        sa.Column("item_id", sa.Uuid(), nullable=False),
        sa.Column("item_title", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("offered_item_id", sa.Uuid(), nullable=True),
        sa.Column("offered_item_title", sa.String(100), nullable=True),
        sa.Column("use_points", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("points_offered", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("created_date", sa.Date(), nullable=False, server_default=sa.text("CURRENT_DATE")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["requester_id"], ["users.id"]),
        sa.CheckConstraint("points_offered >= 0", name="ck_swaps_points_offered_non_negative"),
    )
    op.create_index("ix_swap_requests_requester_id", "swap_requests", ["requester_id"])
    op.create_index("ix_swap_requests_item_id", "swap_requests", ["item_id"])
    op.create_index("ix_swap_requests_owner_id", "swap_requests", ["owner_id"])
    op.create_index("idx_swap_requests_status", "swap_requests", ["status"])


def downgrade() -> None:
    """WARNING: destructive, all marketplace data is lost."""
    op.drop_table("swap_requests")
    op.drop_table("items")
    op.drop_table("users")
