"""Moderation action ledger entry."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from trust_engine.db.base import Base


class ActionType(str, enum.Enum):
    WARNING = "WARNING"
    BAN = "BAN"
    UNBAN = "UNBAN"
    CONTENT_REMOVAL = "CONTENT_REMOVAL"


class ModerationAction(Base):
    """Append-only record of an action taken against a user or listing.

    Rows are never updated. A ban is lifted by writing an UNBAN row whose
    ``reverses_action_id`` points at the BAN; the unique constraint on that
    column keeps a ban from being reversed twice.
    """

    __tablename__ = "moderation_actions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    target_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    target_listing_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    admin_id: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = system
    action_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    duration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    reverses_action_id: Mapped[int | None] = mapped_column(
        ForeignKey("moderation_actions.id"),
        unique=True,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
