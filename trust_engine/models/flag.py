"""Flag model for user reports against listings."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from trust_engine.db.base import Base


class FlagReason(str, enum.Enum):
    SPAM = "SPAM"
    INAPPROPRIATE = "INAPPROPRIATE"
    FAKE = "FAKE"
    OTHER = "OTHER"


class FlagStatus(str, enum.Enum):
    PENDING = "PENDING"
    UPHELD = "UPHELD"
    DISMISSED = "DISMISSED"


class Flag(Base):
    """A report filed by one user against another user's listing."""

    __tablename__ = "flags"
    __table_args__ = (UniqueConstraint("listing_id", "reporter_id", name="uq_flags_listing_reporter"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    listing_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reporter_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    reason: Mapped[str] = mapped_column(String(20), nullable=False)  # SPAM | INAPPROPRIATE | FAKE | OTHER
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING", index=True)
    reviewed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
