"""Moderation storage backends."""

from trust_engine.storage.base import ModerationStore
from trust_engine.storage.memory import InMemoryModerationStore
from trust_engine.storage.sql import SqlModerationStore

__all__ = ["InMemoryModerationStore", "ModerationStore", "SqlModerationStore"]
