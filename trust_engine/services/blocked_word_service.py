"""Admin management of the blocked-word list."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from trust_engine.core.clock import utcnow
from trust_engine.core.config import Settings, settings
from trust_engine.core.errors import ForbiddenError, NotFoundError, ValidationError
from trust_engine.models import BlockedWord, WordSeverity
from trust_engine.services.collaborators import UserDirectory
from trust_engine.services.content_filter import normalize_word
from trust_engine.storage.base import ModerationStore

logger = logging.getLogger(__name__)


class BlockedWordService:
    def __init__(
        self,
        store: ModerationStore,
        users: UserDirectory,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.users = users
        self.config = config or settings
        self.clock = clock

    def _require_admin(self, admin_id: int) -> None:
        user = self.users.find_user(admin_id)
        if user is None or not user.is_admin:
            raise ForbiddenError("Only admins can manage blocked words")

    @staticmethod
    def _severity(value: str) -> WordSeverity:
        try:
            return WordSeverity(str(value).upper())
        except ValueError:
            raise ValidationError("Severity must be WARNING or BLOCK") from None

    def _get(self, word_id: int) -> BlockedWord:
        word = self.store.get_blocked_word(word_id)
        if word is None:
            raise NotFoundError("Blocked word not found")
        return word

    def add(self, word: str, severity: str, admin_id: int) -> BlockedWord:
        self._require_admin(admin_id)
        normalized = normalize_word(word or "")
        if not normalized:
            raise ValidationError("Word cannot be empty")
        if len(normalized) > self.config.max_blocked_word_length:
            raise ValidationError(f"Word must be {self.config.max_blocked_word_length} characters or less")
        level = self._severity(severity)

        with self.store.transaction():
            entry = self.store.add_blocked_word(
                BlockedWord(
                    word=normalized,
                    severity=level.value,
                    added_by=admin_id,
                    is_active=True,
                    created_at=self.clock(),
                )
            )
        logger.info("Blocked word added: %r (%s) by admin %s", normalized, level.value, admin_id)
        return entry

    def list_words(self, active_only: bool = False) -> list[BlockedWord]:
        return self.store.list_blocked_words(active_only=active_only)

    def toggle(self, word_id: int, admin_id: int) -> BlockedWord:
        self._require_admin(admin_id)
        current = self._get(word_id)
        with self.store.transaction():
            word = self.store.update_blocked_word(word_id, is_active=not current.is_active)
        if word is None:
            raise NotFoundError("Blocked word not found")
        logger.info("Blocked word %s %s", word_id, "activated" if word.is_active else "deactivated")
        return word

    def set_severity(self, word_id: int, severity: str, admin_id: int) -> BlockedWord:
        self._require_admin(admin_id)
        level = self._severity(severity)
        self._get(word_id)
        with self.store.transaction():
            word = self.store.update_blocked_word(word_id, severity=level.value)
        if word is None:
            raise NotFoundError("Blocked word not found")
        return word

    def remove(self, word_id: int, admin_id: int) -> None:
        self._require_admin(admin_id)
        with self.store.transaction():
            deleted = self.store.delete_blocked_word(word_id)
        if not deleted:
            raise NotFoundError("Blocked word not found")
        logger.info("Blocked word %s deleted by admin %s", word_id, admin_id)
