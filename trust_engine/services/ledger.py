"""Moderation action ledger.

Every action against a user or listing is appended here and never edited.
User ban state and listing status are projections of the ledger: a user is
banned while at least one BAN is unreversed and not yet expired, and
``recompute_ban_state`` can rebuild that flag at any time.

Methods that write expect to run inside ``store.transaction()`` and queue
their cache and notification signals on the ``SideEffects`` they are given.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from trust_engine.core.clock import as_utc, utcnow
from trust_engine.core.config import Settings, settings
from trust_engine.core.errors import DuplicateError, InvalidOperationError, NotFoundError, ValidationError
from trust_engine.core.moderation_policies import (
    SYSTEM_ACTOR_ID,
    WARNINGS_BEFORE_FLAG_RESTRICTION,
    WARNINGS_BEFORE_LISTING_RESTRICTION,
)
from trust_engine.models import ActionType, AppealStatus, ModerationAction
from trust_engine.services.collaborators import (
    CacheInvalidator,
    ListingDirectory,
    NullCacheInvalidator,
    Notifier,
    SideEffects,
    UserDirectory,
)
from trust_engine.storage.base import ModerationStore

logger = logging.getLogger(__name__)

# Entries that count towards escalation
INFRACTION_TYPES = (ActionType.WARNING.value, ActionType.BAN.value)

LISTING_ACTIVE = "active"
LISTING_REMOVED = "removed"


class _SilentNotifier:
    def notify(self, user_id: int, event: str, details: dict) -> None:
        logger.debug("Notifier disabled; drop %s for user=%s", event, user_id)


@dataclass
class UserModerationStatus:
    user_id: int
    is_banned: bool
    ban_expires_at: datetime | None
    permanent_ban: bool
    warning_count: int
    infraction_count: int
    pending_appeals: int
    can_create_listings: bool
    can_submit_flags: bool
    restrictions: list[str] = field(default_factory=list)
    recent_actions: list[ModerationAction] = field(default_factory=list)


class ModerationLedger:
    def __init__(
        self,
        store: ModerationStore,
        users: UserDirectory,
        listings: ListingDirectory,
        cache: CacheInvalidator | None = None,
        notifier: Notifier | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.users = users
        self.listings = listings
        self.cache = cache or NullCacheInvalidator()
        self.notifier = notifier or _SilentNotifier()
        self.config = config or settings
        self.clock = clock

    def new_effects(self) -> SideEffects:
        return SideEffects(self.cache, self.notifier)

    def _check_reason(self, reason: str) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Action reason is required")
        if len(reason) > self.config.max_action_reason_length:
            raise ValidationError(
                f"Action reason must be {self.config.max_action_reason_length} characters or less"
            )
        return reason

    def record(
        self,
        *,
        target_user_id: int,
        action_type: ActionType,
        admin_id: int,
        reason: str,
        target_listing_id: str | None = None,
        duration_days: int | None = None,
        reverses_action_id: int | None = None,
    ) -> ModerationAction:
        """Append one entry. Projections are the caller's job."""
        if duration_days is not None and action_type != ActionType.BAN:
            raise InvalidOperationError("Only bans carry a duration")
        if reverses_action_id is not None and action_type != ActionType.UNBAN:
            raise InvalidOperationError("Only unbans reverse another action")
        if duration_days is not None and duration_days <= 0:
            raise ValidationError("Ban duration must be positive")

        now = self.clock()
        action = ModerationAction(
            target_user_id=target_user_id,
            target_listing_id=target_listing_id,
            admin_id=admin_id,
            action_type=action_type.value,
            reason=self._check_reason(reason),
            duration_days=duration_days,
            expires_at=now + timedelta(days=duration_days) if duration_days else None,
            reverses_action_id=reverses_action_id,
            created_at=now,
        )
        return self.store.add_action(action)

    def warn(
        self,
        user_id: int,
        admin_id: int,
        reason: str,
        effects: SideEffects,
        listing_id: str | None = None,
    ) -> ModerationAction:
        action = self.record(
            target_user_id=user_id,
            action_type=ActionType.WARNING,
            admin_id=admin_id,
            reason=reason,
            target_listing_id=listing_id,
        )
        count = self.users.increment_warnings(user_id)
        effects.invalidate_user(user_id)
        effects.notify(user_id, "moderation.warning", {"action_id": action.id, "reason": action.reason})
        logger.info("Warning issued: user=%s action=%s warnings=%s", user_id, action.id, count)
        return action

    def ban(
        self,
        user_id: int,
        admin_id: int,
        reason: str,
        duration_days: int | None,
        effects: SideEffects,
        listing_id: str | None = None,
    ) -> ModerationAction:
        """Ban a user and take their active listings down."""
        action = self.record(
            target_user_id=user_id,
            action_type=ActionType.BAN,
            admin_id=admin_id,
            reason=reason,
            target_listing_id=listing_id,
            duration_days=duration_days,
        )
        self.users.set_ban_state(user_id, True, action.reason)
        removed = 0
        for listing in self.listings.list_user_listings(user_id):
            if listing.status != LISTING_ACTIVE:
                continue
            self.listings.set_listing_status(listing.id, LISTING_REMOVED)
            effects.invalidate_listing(listing.id)
            removed += 1
        effects.invalidate_user(user_id)
        effects.notify(
            user_id,
            "moderation.ban",
            {
                "action_id": action.id,
                "reason": action.reason,
                "duration_days": duration_days,
                "expires_at": action.expires_at.isoformat() if action.expires_at else None,
            },
        )
        logger.info(
            "Ban issued: user=%s action=%s duration=%s listings_removed=%s",
            user_id,
            action.id,
            duration_days if duration_days is not None else "permanent",
            removed,
        )
        return action

    def remove_content(
        self,
        listing_id: str,
        owner_id: int,
        admin_id: int,
        reason: str,
        effects: SideEffects,
    ) -> ModerationAction:
        action = self.record(
            target_user_id=owner_id,
            action_type=ActionType.CONTENT_REMOVAL,
            admin_id=admin_id,
            reason=reason,
            target_listing_id=listing_id,
        )
        self.listings.set_listing_status(listing_id, LISTING_REMOVED)
        effects.invalidate_listing(listing_id)
        effects.invalidate_user(owner_id)
        effects.notify(
            owner_id,
            "moderation.content_removed",
            {"action_id": action.id, "listing_id": listing_id, "reason": action.reason},
        )
        logger.info("Content removed: listing=%s owner=%s action=%s", listing_id, owner_id, action.id)
        return action

    def unban(
        self,
        ban: ModerationAction,
        admin_id: int,
        reason: str,
        effects: SideEffects,
    ) -> ModerationAction:
        """Reverse a BAN. Raises ``DuplicateError`` if it was already reversed."""
        if ban.action_type != ActionType.BAN.value:
            raise InvalidOperationError("Only bans can be reversed")
        if self.store.find_reversal(ban.id) is not None:
            raise DuplicateError("Ban has already been reversed")

        action = self.record(
            target_user_id=ban.target_user_id,
            action_type=ActionType.UNBAN,
            admin_id=admin_id,
            reason=reason,
            reverses_action_id=ban.id,
        )
        still_banned = self.recompute_ban_state(ban.target_user_id)
        effects.invalidate_user(ban.target_user_id)
        effects.notify(
            ban.target_user_id,
            "moderation.unban",
            {"action_id": action.id, "reverses_action_id": ban.id, "still_banned": still_banned},
        )
        logger.info("Ban reversed: user=%s ban=%s unban=%s", ban.target_user_id, ban.id, action.id)
        return action

    def get_action(self, action_id: int) -> ModerationAction:
        action = self.store.get_action(action_id)
        if action is None:
            raise NotFoundError("Moderation action not found")
        return action

    def history(self, user_id: int, limit: int | None = None) -> list[ModerationAction]:
        return self.store.list_actions(target_user_id=user_id, limit=limit)

    def prior_infraction_count(self, user_id: int) -> int:
        return self.store.count_actions(target_user_id=user_id, action_types=INFRACTION_TYPES)

    def active_bans(self, user_id: int) -> list[ModerationAction]:
        return self.store.list_active_bans(user_id, self.clock())

    def is_banned(self, user_id: int) -> bool:
        return bool(self.active_bans(user_id))

    def recompute_ban_state(self, user_id: int) -> bool:
        """Rebuild the user's ban projection from the ledger."""
        bans = self.active_bans(user_id)
        if bans:
            self.users.set_ban_state(user_id, True, bans[-1].reason)
        else:
            self.users.set_ban_state(user_id, False)
        return bool(bans)

    def sweep_expired_bans(self) -> list[ModerationAction]:
        """Write a system UNBAN for every timed ban that has run out.

        Each ban is reversed in its own transaction; a ban reversed
        concurrently (sweep or appeal) is skipped.
        """
        reversed_: list[ModerationAction] = []
        for ban in self.store.list_expired_bans(self.clock()):
            effects = self.new_effects()
            try:
                with self.store.transaction():
                    reversed_.append(self.unban(ban, SYSTEM_ACTOR_ID, "Ban expired", effects))
            except DuplicateError:
                logger.info("Ban %s already reversed; skipping", ban.id)
                continue
            effects.flush()
        logger.info("Ban sweep finished: reversed=%s", len(reversed_))
        return reversed_

    def user_status(self, user_id: int, recent_limit: int = 10) -> UserModerationStatus:
        user = self.users.find_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        bans = self.active_bans(user_id)
        permanent = any(b.expires_at is None for b in bans)
        expires_at = None
        if bans and not permanent:
            expires_at = max(as_utc(b.expires_at) for b in bans)

        banned = bool(bans)
        restrictions: list[str] = []
        if banned:
            restrictions.append("banned")
        if user.warning_count >= WARNINGS_BEFORE_LISTING_RESTRICTION:
            restrictions.append("listing_creation_restricted")
        if user.warning_count >= WARNINGS_BEFORE_FLAG_RESTRICTION:
            restrictions.append("flagging_restricted")

        return UserModerationStatus(
            user_id=user_id,
            is_banned=banned,
            ban_expires_at=expires_at,
            permanent_ban=permanent,
            warning_count=user.warning_count,
            infraction_count=self.prior_infraction_count(user_id),
            pending_appeals=len(self.store.list_appeals(status=AppealStatus.PENDING.value, user_id=user_id)),
            can_create_listings=not banned and user.warning_count < WARNINGS_BEFORE_LISTING_RESTRICTION,
            can_submit_flags=not banned and user.warning_count < WARNINGS_BEFORE_FLAG_RESTRICTION,
            restrictions=restrictions,
            recent_actions=self.history(user_id, limit=recent_limit),
        )
