"""User and listing directories.

The SQL variants share the moderation session, so user and listing
projections commit atomically with the ledger entry that caused them. The
in-memory variants, once bound to a store, register undo steps so a failed
transaction restores them too.
"""

from __future__ import annotations

import threading

from sqlalchemy import select
from sqlalchemy.orm import Session

from trust_engine.core.clock import utcnow
from trust_engine.models import Listing, User
from trust_engine.services.collaborators import ListingRecord, UserRecord
from trust_engine.storage.base import ModerationStore


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        is_admin=bool(user.is_admin),
        is_banned=bool(user.is_banned),
        ban_reason=user.ban_reason,
        warning_count=user.warning_count or 0,
    )


def _listing_record(listing: Listing) -> ListingRecord:
    return ListingRecord(
        id=listing.id,
        user_id=listing.user_id,
        title=listing.title,
        description=listing.description or "",
        price_usd=listing.price_usd,
        category=listing.category,
        status=listing.status,
    )


class SqlUserDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_user(self, user_id: int) -> UserRecord | None:
        user = self.db.get(User, user_id)
        return _user_record(user) if user else None

    def is_banned(self, user: UserRecord) -> bool:
        return user.is_banned

    def set_ban_state(self, user_id: int, banned: bool, reason: str | None = None) -> None:
        user = self.db.get(User, user_id)
        if user is None:
            return
        user.is_banned = banned
        user.ban_reason = reason if banned else None
        user.banned_at = utcnow() if banned else None
        self.db.flush()

    def increment_warnings(self, user_id: int) -> int:
        user = self.db.get(User, user_id)
        if user is None:
            return 0
        user.warning_count = (user.warning_count or 0) + 1
        self.db.flush()
        return user.warning_count


class SqlListingDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_listing(self, listing_id: str) -> ListingRecord | None:
        listing = self.db.get(Listing, listing_id)
        return _listing_record(listing) if listing else None

    def set_listing_status(self, listing_id: str, status: str) -> None:
        listing = self.db.get(Listing, listing_id)
        if listing is None:
            return
        listing.status = status
        self.db.flush()

    def list_user_listings(self, user_id: int) -> list[ListingRecord]:
        stmt = select(Listing).where(Listing.user_id == user_id).order_by(Listing.created_at.asc())
        return [_listing_record(row) for row in self.db.execute(stmt).scalars().all()]


class _RollbackAware:
    """Registers projection writes with the bound store's transaction."""

    _store: ModerationStore | None = None

    def bind(self, store: ModerationStore) -> None:
        self._store = store

    def _keep_for_rollback(self, record, fields: tuple[str, ...]) -> None:
        if self._store is None:
            return
        saved = {name: getattr(record, name) for name in fields}

        def undo() -> None:
            for name, value in saved.items():
                setattr(record, name, value)

        self._store.on_rollback(undo)


class InMemoryUserDirectory(_RollbackAware):
    def __init__(self, users: list[UserRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self.users: dict[int, UserRecord] = {u.id: u for u in users or []}

    def add(self, user: UserRecord) -> UserRecord:
        self.users[user.id] = user
        return user

    def find_user(self, user_id: int) -> UserRecord | None:
        return self.users.get(user_id)

    def is_banned(self, user: UserRecord) -> bool:
        return user.is_banned

    def set_ban_state(self, user_id: int, banned: bool, reason: str | None = None) -> None:
        user = self.users.get(user_id)
        if user is not None:
            self._keep_for_rollback(user, ("is_banned", "ban_reason"))
            user.is_banned = banned
            user.ban_reason = reason if banned else None

    def increment_warnings(self, user_id: int) -> int:
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return 0
            self._keep_for_rollback(user, ("warning_count",))
            user.warning_count += 1
            return user.warning_count


class InMemoryListingDirectory(_RollbackAware):
    def __init__(self, listings: list[ListingRecord] | None = None) -> None:
        self.listings: dict[str, ListingRecord] = {item.id: item for item in listings or []}

    def add(self, listing: ListingRecord) -> ListingRecord:
        self.listings[listing.id] = listing
        return listing

    def find_listing(self, listing_id: str) -> ListingRecord | None:
        return self.listings.get(listing_id)

    def set_listing_status(self, listing_id: str, status: str) -> None:
        listing = self.listings.get(listing_id)
        if listing is not None:
            self._keep_for_rollback(listing, ("status",))
            listing.status = status

    def list_user_listings(self, user_id: int) -> list[ListingRecord]:
        return [item for item in self.listings.values() if item.user_id == user_id]
