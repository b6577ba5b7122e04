"""Create moderation tables.

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("ban_reason", sa.Text(), nullable=True),
        sa.Column("banned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("warning_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "listings",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("price_usd", sa.Float(), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_listings_user_id"), "listings", ["user_id"], unique=False)

    op.create_table(
        "flags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("listing_id", sa.String(64), nullable=False),
        sa.Column("reporter_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("reviewed_by", sa.Integer(), nullable=True),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("listing_id", "reporter_id", name="uq_flags_listing_reporter"),
    )
    op.create_index(op.f("ix_flags_listing_id"), "flags", ["listing_id"], unique=False)
    op.create_index(op.f("ix_flags_reporter_id"), "flags", ["reporter_id"], unique=False)
    op.create_index(op.f("ix_flags_status"), "flags", ["status"], unique=False)
    op.create_index(op.f("ix_flags_created_at"), "flags", ["created_at"], unique=False)

    op.create_table(
        "moderation_actions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("target_user_id", sa.Integer(), nullable=False),
        sa.Column("target_listing_id", sa.String(64), nullable=True),
        sa.Column("admin_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(20), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reverses_action_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["reverses_action_id"], ["moderation_actions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reverses_action_id"),
    )
    op.create_index(op.f("ix_moderation_actions_target_user_id"), "moderation_actions", ["target_user_id"], unique=False)
    op.create_index(
        op.f("ix_moderation_actions_target_listing_id"), "moderation_actions", ["target_listing_id"], unique=False
    )
    op.create_index(op.f("ix_moderation_actions_action_type"), "moderation_actions", ["action_type"], unique=False)
    op.create_index(op.f("ix_moderation_actions_expires_at"), "moderation_actions", ["expires_at"], unique=False)
    op.create_index(op.f("ix_moderation_actions_created_at"), "moderation_actions", ["created_at"], unique=False)

    op.create_table(
        "appeals",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("moderation_action_id", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("admin_response", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.Integer(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["moderation_action_id"], ["moderation_actions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("moderation_action_id", "user_id", name="uq_appeals_action_user"),
    )
    op.create_index(op.f("ix_appeals_user_id"), "appeals", ["user_id"], unique=False)
    op.create_index(op.f("ix_appeals_status"), "appeals", ["status"], unique=False)
    op.create_index(op.f("ix_appeals_created_at"), "appeals", ["created_at"], unique=False)

    op.create_table(
        "blocked_words",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("word", sa.String(100), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("added_by", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("word"),
    )
    op.create_index(op.f("ix_blocked_words_is_active"), "blocked_words", ["is_active"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_blocked_words_is_active"), table_name="blocked_words")
    op.drop_table("blocked_words")
    op.drop_index(op.f("ix_appeals_created_at"), table_name="appeals")
    op.drop_index(op.f("ix_appeals_status"), table_name="appeals")
    op.drop_index(op.f("ix_appeals_user_id"), table_name="appeals")
    op.drop_table("appeals")
    op.drop_index(op.f("ix_moderation_actions_created_at"), table_name="moderation_actions")
    op.drop_index(op.f("ix_moderation_actions_expires_at"), table_name="moderation_actions")
    op.drop_index(op.f("ix_moderation_actions_action_type"), table_name="moderation_actions")
    op.drop_index(op.f("ix_moderation_actions_target_listing_id"), table_name="moderation_actions")
    op.drop_index(op.f("ix_moderation_actions_target_user_id"), table_name="moderation_actions")
    op.drop_table("moderation_actions")
    op.drop_index(op.f("ix_flags_created_at"), table_name="flags")
    op.drop_index(op.f("ix_flags_status"), table_name="flags")
    op.drop_index(op.f("ix_flags_reporter_id"), table_name="flags")
    op.drop_index(op.f("ix_flags_listing_id"), table_name="flags")
    op.drop_table("flags")
    op.drop_index(op.f("ix_listings_user_id"), table_name="listings")
    op.drop_table("listings")
    op.drop_table("users")
