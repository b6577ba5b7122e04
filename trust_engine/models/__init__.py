"""SQLAlchemy models."""

from __future__ import annotations

from trust_engine.models.appeal import Appeal, AppealStatus
from trust_engine.models.blocked_word import BlockedWord, WordSeverity
from trust_engine.models.flag import Flag, FlagReason, FlagStatus
from trust_engine.models.listing import Listing
from trust_engine.models.moderation_action import ActionType, ModerationAction
from trust_engine.models.user import User

__all__ = [
    "ActionType",
    "Appeal",
    "AppealStatus",
    "BlockedWord",
    "Flag",
    "FlagReason",
    "FlagStatus",
    "Listing",
    "ModerationAction",
    "User",
    "WordSeverity",
]
