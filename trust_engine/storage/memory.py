"""In-process moderation store.

Used by tests and single-process tooling. Uniqueness rules mirror the database
constraints, and a failed ``transaction()`` replays an undo journal so nothing
written inside it survives.
"""

from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable, Iterator

from trust_engine.core.clock import as_utc
from trust_engine.core.errors import DuplicateError
from trust_engine.models import (
    ActionType,
    Appeal,
    AppealStatus,
    BlockedWord,
    Flag,
    FlagStatus,
    ModerationAction,
)
from trust_engine.storage.base import ModerationStore


def _hours(created: datetime | None, reviewed: datetime | None) -> float | None:
    if created is None or reviewed is None:
        return None
    return (as_utc(reviewed) - as_utc(created)).total_seconds() / 3600


class InMemoryModerationStore(ModerationStore):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._undo: list[Callable[[], None]] | None = None
        self._ids = {name: itertools.count(1) for name in ("flag", "action", "appeal", "word")}

        self.flags: dict[int, Flag] = {}
        self.actions: dict[int, ModerationAction] = {}
        self.appeals: dict[int, Appeal] = {}
        self.words: dict[int, BlockedWord] = {}

        self._flag_keys: dict[tuple[str, int], int] = {}
        self._appeal_keys: dict[tuple[int, int], int] = {}
        self._word_keys: dict[str, int] = {}
        self._reversals: dict[int, int] = {}

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            if self._undo is not None:
                yield
                return
            self._undo = []
            try:
                yield
            except BaseException:
                for step in reversed(self._undo):
                    step()
                raise
            finally:
                self._undo = None

    def _journal(self, step: Callable[[], None]) -> None:
        if self._undo is not None:
            self._undo.append(step)

    def on_rollback(self, undo: Callable[[], None]) -> None:
        with self._lock:
            self._journal(undo)

    def _restore(self, obj, fields: tuple[str, ...]) -> None:
        saved = {name: getattr(obj, name) for name in fields}

        def undo() -> None:
            for name, value in saved.items():
                setattr(obj, name, value)

        self._journal(undo)

    def _insert(self, table: dict, obj, index: dict | None = None, key=None) -> None:
        table[obj.id] = obj
        if index is not None:
            index[key] = obj.id

        def undo() -> None:
            table.pop(obj.id, None)
            if index is not None:
                index.pop(key, None)

        self._journal(undo)

    # Flags

    def add_flag(self, flag: Flag) -> Flag:
        with self._lock:
            key = (flag.listing_id, flag.reporter_id)
            if key in self._flag_keys:
                raise DuplicateError("Flag for this listing and reporter already exists")
            flag.id = next(self._ids["flag"])
            self._insert(self.flags, flag, self._flag_keys, key)
            return flag

    def get_flag(self, flag_id: int) -> Flag | None:
        return self.flags.get(flag_id)

    def find_flag(self, listing_id: str, reporter_id: int) -> Flag | None:
        flag_id = self._flag_keys.get((listing_id, reporter_id))
        return self.flags.get(flag_id) if flag_id is not None else None

    def count_flags_by_reporter_since(self, reporter_id: int, since: datetime) -> int:
        return sum(1 for f in self.flags.values() if f.reporter_id == reporter_id and as_utc(f.created_at) >= since)

    def resolve_flag(
        self,
        flag_id: int,
        status: str,
        reviewed_by: int,
        review_notes: str | None,
        reviewed_at: datetime,
    ) -> Flag | None:
        with self._lock:
            flag = self.flags.get(flag_id)
            if flag is None or flag.status != FlagStatus.PENDING.value:
                return None
            self._restore(flag, ("status", "reviewed_by", "review_notes", "reviewed_at"))
            flag.status = status
            flag.reviewed_by = reviewed_by
            flag.review_notes = review_notes
            flag.reviewed_at = reviewed_at
            return flag

    def list_flags(
        self,
        status: str | None = None,
        created_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Flag]:
        rows = [
            f
            for f in self.flags.values()
            if (status is None or f.status == status)
            and (created_before is None or as_utc(f.created_at) < created_before)
        ]
        rows.sort(key=lambda f: (as_utc(f.created_at), f.id))
        return rows[:limit] if limit is not None else rows

    def count_flags(
        self,
        status: str | None = None,
        reason: str | None = None,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> int:
        return sum(
            1
            for f in self.flags.values()
            if (status is None or f.status == status)
            and (reason is None or f.reason == reason)
            and (created_after is None or as_utc(f.created_at) >= created_after)
            and (created_before is None or as_utc(f.created_at) < created_before)
        )

    def flag_review_hours(self) -> list[float]:
        hours = (_hours(f.created_at, f.reviewed_at) for f in self.flags.values())
        return [h for h in hours if h is not None]

    # Ledger

    def add_action(self, action: ModerationAction) -> ModerationAction:
        with self._lock:
            reverses = action.reverses_action_id
            if reverses is not None and reverses in self._reversals:
                raise DuplicateError("Reversal for this action already exists")
            action.id = next(self._ids["action"])
            if reverses is not None:
                self._insert(self.actions, action, self._reversals, reverses)
            else:
                self._insert(self.actions, action)
            return action

    def get_action(self, action_id: int) -> ModerationAction | None:
        return self.actions.get(action_id)

    def _matching_actions(self, target_user_id, action_types, created_after) -> list[ModerationAction]:
        types = {getattr(t, "value", t) for t in action_types} if action_types is not None else None
        return [
            a
            for a in self.actions.values()
            if (target_user_id is None or a.target_user_id == target_user_id)
            and (types is None or a.action_type in types)
            and (created_after is None or as_utc(a.created_at) >= created_after)
        ]

    def list_actions(
        self,
        target_user_id: int | None = None,
        action_types: Iterable[str] | None = None,
        created_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModerationAction]:
        rows = self._matching_actions(target_user_id, action_types, created_after)
        rows.sort(key=lambda a: (as_utc(a.created_at), a.id), reverse=True)
        return rows[:limit] if limit is not None else rows

    def count_actions(
        self,
        target_user_id: int | None = None,
        action_types: Iterable[str] | None = None,
        created_after: datetime | None = None,
    ) -> int:
        return len(self._matching_actions(target_user_id, action_types, created_after))

    def find_reversal(self, action_id: int) -> ModerationAction | None:
        reversal_id = self._reversals.get(action_id)
        return self.actions.get(reversal_id) if reversal_id is not None else None

    def _unreversed_bans(self) -> list[ModerationAction]:
        return [
            a
            for a in self.actions.values()
            if a.action_type == ActionType.BAN.value and a.id not in self._reversals
        ]

    def list_active_bans(self, target_user_id: int, now: datetime) -> list[ModerationAction]:
        return sorted(
            (
                a
                for a in self._unreversed_bans()
                if a.target_user_id == target_user_id and (a.expires_at is None or as_utc(a.expires_at) > now)
            ),
            key=lambda a: a.id,
        )

    def list_expired_bans(self, now: datetime) -> list[ModerationAction]:
        return sorted(
            (a for a in self._unreversed_bans() if a.expires_at is not None and as_utc(a.expires_at) <= now),
            key=lambda a: as_utc(a.expires_at),
        )

    # Appeals

    def add_appeal(self, appeal: Appeal) -> Appeal:
        with self._lock:
            key = (appeal.moderation_action_id, appeal.user_id)
            if key in self._appeal_keys:
                raise DuplicateError("Appeal for this action already exists")
            appeal.id = next(self._ids["appeal"])
            self._insert(self.appeals, appeal, self._appeal_keys, key)
            return appeal

    def get_appeal(self, appeal_id: int) -> Appeal | None:
        return self.appeals.get(appeal_id)

    def find_appeal(self, moderation_action_id: int, user_id: int) -> Appeal | None:
        appeal_id = self._appeal_keys.get((moderation_action_id, user_id))
        return self.appeals.get(appeal_id) if appeal_id is not None else None

    def resolve_appeal(
        self,
        appeal_id: int,
        status: str,
        reviewed_by: int | None,
        admin_response: str | None,
        reviewed_at: datetime,
    ) -> Appeal | None:
        with self._lock:
            appeal = self.appeals.get(appeal_id)
            if appeal is None or appeal.status != AppealStatus.PENDING.value:
                return None
            self._restore(appeal, ("status", "reviewed_by", "admin_response", "reviewed_at"))
            appeal.status = status
            appeal.reviewed_by = reviewed_by
            appeal.admin_response = admin_response
            appeal.reviewed_at = reviewed_at
            return appeal

    def list_appeals(
        self,
        status: str | None = None,
        user_id: int | None = None,
        created_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Appeal]:
        rows = [
            a
            for a in self.appeals.values()
            if (status is None or a.status == status)
            and (user_id is None or a.user_id == user_id)
            and (created_before is None or as_utc(a.created_at) < created_before)
        ]
        rows.sort(key=lambda a: (as_utc(a.created_at), a.id))
        return rows[:limit] if limit is not None else rows

    def count_appeals(self, status: str | None = None, created_before: datetime | None = None) -> int:
        return len(self.list_appeals(status=status, created_before=created_before))

    def appeal_review_hours(self) -> list[float]:
        hours = (_hours(a.created_at, a.reviewed_at) for a in self.appeals.values())
        return [h for h in hours if h is not None]

    # Blocked words

    def add_blocked_word(self, word: BlockedWord) -> BlockedWord:
        with self._lock:
            if word.word in self._word_keys:
                raise DuplicateError("Blocked word already exists")
            word.id = next(self._ids["word"])
            self._insert(self.words, word, self._word_keys, word.word)
            return word

    def get_blocked_word(self, word_id: int) -> BlockedWord | None:
        return self.words.get(word_id)

    def list_blocked_words(self, active_only: bool = False) -> list[BlockedWord]:
        rows = [w for w in self.words.values() if w.is_active or not active_only]
        return sorted(rows, key=lambda w: w.word)

    def update_blocked_word(
        self,
        word_id: int,
        is_active: bool | None = None,
        severity: str | None = None,
    ) -> BlockedWord | None:
        with self._lock:
            word = self.words.get(word_id)
            if word is None:
                return None
            self._restore(word, ("is_active", "severity"))
            if is_active is not None:
                word.is_active = is_active
            if severity is not None:
                word.severity = severity
            return word

    def delete_blocked_word(self, word_id: int) -> bool:
        with self._lock:
            word = self.words.pop(word_id, None)
            if word is None:
                return False
            self._word_keys.pop(word.word, None)

            def undo() -> None:
                self.words[word.id] = word
                self._word_keys[word.word] = word.id

            self._journal(undo)
            return True
