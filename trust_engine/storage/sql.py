"""SQLAlchemy-backed moderation store."""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator

from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, aliased

from trust_engine.core.clock import as_utc
from trust_engine.core.errors import DuplicateError, StorageFailure
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

logger = logging.getLogger(__name__)


def _translated(what: str):
    """Map driver errors onto the moderation error taxonomy."""

    def wrap(fn):
        @functools.wraps(fn)
        def inner(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except IntegrityError as exc:
                raise DuplicateError(f"{what} already exists") from exc
            except DBAPIError as exc:
                logger.error("Storage failure in %s: %s", fn.__name__, exc)
                raise StorageFailure("Moderation storage is unavailable") from exc

        return inner

    return wrap


def _hours_between(rows) -> list[float]:
    return [
        (as_utc(reviewed) - as_utc(created)).total_seconds() / 3600
        for created, reviewed in rows
        if created is not None and reviewed is not None
    ]


class SqlModerationStore(ModerationStore):
    def __init__(self, db: Session) -> None:
        self.db = db
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            self._commit()
        except BaseException:
            self.db.rollback()
            raise
        finally:
            self._depth = 0

    @_translated("Record")
    def _commit(self) -> None:
        self.db.commit()

    def _persist(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    # Flags

    @_translated("Flag for this listing and reporter")
    def add_flag(self, flag: Flag) -> Flag:
        return self._persist(flag)

    @_translated("Flag")
    def get_flag(self, flag_id: int) -> Flag | None:
        return self.db.get(Flag, flag_id)

    @_translated("Flag")
    def find_flag(self, listing_id: str, reporter_id: int) -> Flag | None:
        stmt = select(Flag).where(Flag.listing_id == listing_id, Flag.reporter_id == reporter_id)
        return self.db.execute(stmt).scalar_one_or_none()

    @_translated("Flag")
    def count_flags_by_reporter_since(self, reporter_id: int, since: datetime) -> int:
        stmt = select(func.count(Flag.id)).where(Flag.reporter_id == reporter_id, Flag.created_at >= since)
        return self.db.execute(stmt).scalar_one()

    @_translated("Flag")
    def resolve_flag(
        self,
        flag_id: int,
        status: str,
        reviewed_by: int,
        review_notes: str | None,
        reviewed_at: datetime,
    ) -> Flag | None:
        stmt = (
            update(Flag)
            .where(Flag.id == flag_id, Flag.status == FlagStatus.PENDING.value)
            .values(status=status, reviewed_by=reviewed_by, review_notes=review_notes, reviewed_at=reviewed_at)
        )
        if self.db.execute(stmt).rowcount == 0:
            return None
        return self.db.get(Flag, flag_id)

    @_translated("Flag")
    def list_flags(
        self,
        status: str | None = None,
        created_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Flag]:
        stmt = select(Flag)
        if status is not None:
            stmt = stmt.where(Flag.status == status)
        if created_before is not None:
            stmt = stmt.where(Flag.created_at < created_before)
        stmt = stmt.order_by(Flag.created_at.asc(), Flag.id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    @_translated("Flag")
    def count_flags(
        self,
        status: str | None = None,
        reason: str | None = None,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
    ) -> int:
        stmt = select(func.count(Flag.id))
        if status is not None:
            stmt = stmt.where(Flag.status == status)
        if reason is not None:
            stmt = stmt.where(Flag.reason == reason)
        if created_after is not None:
            stmt = stmt.where(Flag.created_at >= created_after)
        if created_before is not None:
            stmt = stmt.where(Flag.created_at < created_before)
        return self.db.execute(stmt).scalar_one()

    @_translated("Flag")
    def flag_review_hours(self) -> list[float]:
        stmt = select(Flag.created_at, Flag.reviewed_at).where(Flag.reviewed_at.is_not(None))
        return _hours_between(self.db.execute(stmt).all())

    # Ledger

    @_translated("Reversal for this action")
    def add_action(self, action: ModerationAction) -> ModerationAction:
        return self._persist(action)

    @_translated("Moderation action")
    def get_action(self, action_id: int) -> ModerationAction | None:
        return self.db.get(ModerationAction, action_id)

    def _action_filters(self, stmt, target_user_id, action_types, created_after):
        if target_user_id is not None:
            stmt = stmt.where(ModerationAction.target_user_id == target_user_id)
        if action_types is not None:
            stmt = stmt.where(ModerationAction.action_type.in_([getattr(t, "value", t) for t in action_types]))
        if created_after is not None:
            stmt = stmt.where(ModerationAction.created_at >= created_after)
        return stmt

    @_translated("Moderation action")
    def list_actions(
        self,
        target_user_id: int | None = None,
        action_types: Iterable[str] | None = None,
        created_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[ModerationAction]:
        stmt = self._action_filters(select(ModerationAction), target_user_id, action_types, created_after)
        stmt = stmt.order_by(ModerationAction.created_at.desc(), ModerationAction.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    @_translated("Moderation action")
    def count_actions(
        self,
        target_user_id: int | None = None,
        action_types: Iterable[str] | None = None,
        created_after: datetime | None = None,
    ) -> int:
        stmt = self._action_filters(
            select(func.count(ModerationAction.id)), target_user_id, action_types, created_after
        )
        return self.db.execute(stmt).scalar_one()

    @_translated("Moderation action")
    def find_reversal(self, action_id: int) -> ModerationAction | None:
        stmt = select(ModerationAction).where(ModerationAction.reverses_action_id == action_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _unreversed_bans(self):
        reversal = aliased(ModerationAction)
        return select(ModerationAction).where(
            ModerationAction.action_type == ActionType.BAN.value,
            ~exists().where(reversal.reverses_action_id == ModerationAction.id),
        )

    @_translated("Moderation action")
    def list_active_bans(self, target_user_id: int, now: datetime) -> list[ModerationAction]:
        stmt = self._unreversed_bans().where(
            ModerationAction.target_user_id == target_user_id,
            or_(ModerationAction.expires_at.is_(None), ModerationAction.expires_at > now),
        )
        return list(self.db.execute(stmt.order_by(ModerationAction.id.asc())).scalars().all())

    @_translated("Moderation action")
    def list_expired_bans(self, now: datetime) -> list[ModerationAction]:
        stmt = self._unreversed_bans().where(
            ModerationAction.expires_at.is_not(None),
            ModerationAction.expires_at <= now,
        )
        return list(self.db.execute(stmt.order_by(ModerationAction.expires_at.asc())).scalars().all())

    # Appeals

    @_translated("Appeal for this action")
    def add_appeal(self, appeal: Appeal) -> Appeal:
        return self._persist(appeal)

    @_translated("Appeal")
    def get_appeal(self, appeal_id: int) -> Appeal | None:
        return self.db.get(Appeal, appeal_id)

    @_translated("Appeal")
    def find_appeal(self, moderation_action_id: int, user_id: int) -> Appeal | None:
        stmt = select(Appeal).where(Appeal.moderation_action_id == moderation_action_id, Appeal.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    @_translated("Appeal")
    def resolve_appeal(
        self,
        appeal_id: int,
        status: str,
        reviewed_by: int | None,
        admin_response: str | None,
        reviewed_at: datetime,
    ) -> Appeal | None:
        stmt = (
            update(Appeal)
            .where(Appeal.id == appeal_id, Appeal.status == AppealStatus.PENDING.value)
            .values(status=status, reviewed_by=reviewed_by, admin_response=admin_response, reviewed_at=reviewed_at)
        )
        if self.db.execute(stmt).rowcount == 0:
            return None
        return self.db.get(Appeal, appeal_id)

    @_translated("Appeal")
    def list_appeals(
        self,
        status: str | None = None,
        user_id: int | None = None,
        created_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Appeal]:
        stmt = select(Appeal)
        if status is not None:
            stmt = stmt.where(Appeal.status == status)
        if user_id is not None:
            stmt = stmt.where(Appeal.user_id == user_id)
        if created_before is not None:
            stmt = stmt.where(Appeal.created_at < created_before)
        stmt = stmt.order_by(Appeal.created_at.asc(), Appeal.id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    @_translated("Appeal")
    def count_appeals(self, status: str | None = None, created_before: datetime | None = None) -> int:
        stmt = select(func.count(Appeal.id))
        if status is not None:
            stmt = stmt.where(Appeal.status == status)
        if created_before is not None:
            stmt = stmt.where(Appeal.created_at < created_before)
        return self.db.execute(stmt).scalar_one()

    @_translated("Appeal")
    def appeal_review_hours(self) -> list[float]:
        stmt = select(Appeal.created_at, Appeal.reviewed_at).where(Appeal.reviewed_at.is_not(None))
        return _hours_between(self.db.execute(stmt).all())

    # Blocked words

    @_translated("Blocked word")
    def add_blocked_word(self, word: BlockedWord) -> BlockedWord:
        return self._persist(word)

    @_translated("Blocked word")
    def get_blocked_word(self, word_id: int) -> BlockedWord | None:
        return self.db.get(BlockedWord, word_id)

    @_translated("Blocked word")
    def list_blocked_words(self, active_only: bool = False) -> list[BlockedWord]:
        stmt = select(BlockedWord)
        if active_only:
            stmt = stmt.where(BlockedWord.is_active.is_(True))
        return list(self.db.execute(stmt.order_by(BlockedWord.word.asc())).scalars().all())

    @_translated("Blocked word")
    def update_blocked_word(
        self,
        word_id: int,
        is_active: bool | None = None,
        severity: str | None = None,
    ) -> BlockedWord | None:
        word = self.db.get(BlockedWord, word_id)
        if word is None:
            return None
        if is_active is not None:
            word.is_active = is_active
        if severity is not None:
            word.severity = severity
        self.db.flush()
        return word

    @_translated("Blocked word")
    def delete_blocked_word(self, word_id: int) -> bool:
        result = self.db.execute(delete(BlockedWord).where(BlockedWord.id == word_id))
        return result.rowcount > 0
