"""Blocked word model: admin-managed content filter list."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from trust_engine.db.base import Base


class WordSeverity(str, enum.Enum):
    WARNING = "WARNING"
    BLOCK = "BLOCK"


class BlockedWord(Base):
    __tablename__ = "blocked_words"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    word: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)  # lower-cased, trimmed
    severity: Mapped[str] = mapped_column(String(20), nullable=False)  # WARNING | BLOCK
    added_by: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
