"""Storage interface for flags, ledger entries, appeals and blocked words.

Writes are only valid inside ``transaction()``. Uniqueness violations surface
as ``DuplicateError`` and backend outages as ``StorageFailure``; the
``resolve_*`` methods are conditional on the row still being PENDING and
return None when another reviewer got there first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Iterable

from trust_engine.models import Appeal, BlockedWord, Flag, ModerationAction


class ModerationStore(ABC):
    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Unit of work: everything inside commits together or not at all."""

    def on_rollback(self, undo: Callable[[], None]) -> None:
        """Register a compensating step for a write made outside the store.

        SQL directories share the store session, so its rollback already
        covers them and nothing needs registering.
        """

    # Flags

    @abstractmethod
    def add_flag(self, flag: Flag) -> Flag: ...

    @abstractmethod
    def get_flag(self, flag_id: int) -> Flag | None: ...

    @abstractmethod
    def find_flag(self, listing_id: str, reporter_id: int) -> Flag | None: ...

    @abstractmethod
    def count_flags_by_reporter_since(self, reporter_id: int, since: datetime) -> int: ...

    @abstractmethod
    def resolve_flag(
        self,
        flag_id: int,
        status: str,
        reviewed_by: int,
        review_notes: str | None,
        reviewed_at: datetime,
    ) -> Flag | None: ...

    @abstractmethod
    def list_flags(
        self,
        status: str | None = None,
        created_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Flag]:
        """Oldest first."""

    @abstractmethod
    def count_flags(
        self,
        status: str | None = None,
        reason: str | None = None,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> int: ...

    @abstractmethod
    def flag_review_hours(self) -> list[float]:
        """Hours between creation and review for every reviewed flag."""

    # Ledger

    @abstractmethod
    def add_action(self, action: ModerationAction) -> ModerationAction: ...

    @abstractmethod
    def get_action(self, action_id: int) -> ModerationAction | None: ...

    @abstractmethod
    def list_actions(
        self,
        target_user_id: int | None = None,
        action_types: Iterable[str] | None = None,
        created_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModerationAction]:
        """Newest first."""

    @abstractmethod
    def count_actions(
        self,
        target_user_id: int | None = None,
        action_types: Iterable[str] | None = None,
        created_after: datetime | None = None,
    ) -> int: ...

    @abstractmethod
    def find_reversal(self, action_id: int) -> ModerationAction | None: ...

    @abstractmethod
    def list_active_bans(self, target_user_id: int, now: datetime) -> list[ModerationAction]:
        """Unreversed BANs that are permanent or expire after ``now``."""

    @abstractmethod
    def list_expired_bans(self, now: datetime) -> list[ModerationAction]:
        """Unreversed timed BANs whose ``expires_at`` is at or before ``now``."""

    # Appeals

    @abstractmethod
    def add_appeal(self, appeal: Appeal) -> Appeal: ...

    @abstractmethod
    def get_appeal(self, appeal_id: int) -> Appeal | None: ...

    @abstractmethod
    def find_appeal(self, moderation_action_id: int, user_id: int) -> Appeal | None: ...

    @abstractmethod
    def resolve_appeal(
        self,
        appeal_id: int,
        status: str,
        reviewed_by: int | None,
        admin_response: str | None,
        reviewed_at: datetime,
    ) -> Appeal | None: ...

    @abstractmethod
    def list_appeals(
        self,
        status: str | None = None,
        user_id: int | None = None,
        created_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Appeal]:
        """Oldest first."""

    @abstractmethod
    def count_appeals(self, status: str | None = None, created_before: datetime | None = None) -> int: ...

    @abstractmethod
    def appeal_review_hours(self) -> list[float]: ...

    # Blocked words

    @abstractmethod
    def add_blocked_word(self, word: BlockedWord) -> BlockedWord: ...

    @abstractmethod
    def get_blocked_word(self, word_id: int) -> BlockedWord | None: ...

    @abstractmethod
    def list_blocked_words(self, active_only: bool = False) -> list[BlockedWord]: ...

    @abstractmethod
    def update_blocked_word(
        self,
        word_id: int,
        is_active: bool | None = None,
        severity: str | None = None,
    ) -> BlockedWord | None: ...

    @abstractmethod
    def delete_blocked_word(self, word_id: int) -> bool: ...
