"""Contracts for the systems moderation talks to but does not own.

Users and listings belong to the marketplace services; the cache and the
notification channel are best-effort. Cache and notification calls are queued
on ``SideEffects`` during a unit of work and only run once the ledger write
has committed, so a failing downstream never undoes a moderation decision.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


@dataclass
class UserRecord:
    id: int
    is_admin: bool = False
    is_banned: bool = False
    ban_reason: str | None = None
    warning_count: int = 0


@dataclass
class ListingRecord:
    id: str
    user_id: int
    title: str = ""
    description: str = ""
    price_usd: float | None = None
    category: str | None = None
    status: str = "active"


class UserDirectory(Protocol):
    def find_user(self, user_id: int) -> UserRecord | None: ...

    def is_banned(self, user: UserRecord) -> bool: ...

    def set_ban_state(self, user_id: int, banned: bool, reason: str | None = None) -> None: ...

    def increment_warnings(self, user_id: int) -> int: ...


class ListingDirectory(Protocol):
    def find_listing(self, listing_id: str) -> ListingRecord | None: ...

    def set_listing_status(self, listing_id: str, status: str) -> None: ...

    def list_user_listings(self, user_id: int) -> list[ListingRecord]: ...


class CacheInvalidator(Protocol):
    def invalidate_user(self, user_id: int) -> None: ...

    def invalidate_listing(self, listing_id: str) -> None: ...


class Notifier(Protocol):
    def notify(self, user_id: int, event: str, details: dict[str, Any]) -> None: ...


class NullCacheInvalidator:
    """Used when no cache is configured."""

    def invalidate_user(self, user_id: int) -> None:
        logger.debug("Cache disabled; skip invalidation for user=%s", user_id)

    def invalidate_listing(self, listing_id: str) -> None:
        logger.debug("Cache disabled; skip invalidation for listing=%s", listing_id)


class SideEffects:
    """Queue of downstream signals released after a successful commit."""

    def __init__(self, cache: CacheInvalidator, notifier: Notifier) -> None:
        self._cache = cache
        self._notifier = notifier
        self._queue: list[tuple[str, Callable[[], None]]] = []
        self._users: set[int] = set()
        self._listings: set[str] = set()

    def invalidate_user(self, user_id: int) -> None:
        if user_id in self._users:
            return
        self._users.add(user_id)
        self._queue.append((f"invalidate user={user_id}", lambda: self._cache.invalidate_user(user_id)))

    def invalidate_listing(self, listing_id: str) -> None:
        if listing_id in self._listings:
            return
        self._listings.add(listing_id)
        self._queue.append(
            (f"invalidate listing={listing_id}", lambda: self._cache.invalidate_listing(listing_id))
        )

    def notify(self, user_id: int, event: str, details: dict[str, Any]) -> None:
        self._queue.append(
            (f"notify {event} user={user_id}", lambda: self._notifier.notify(user_id, event, details))
        )

    def __len__(self) -> int:
        return len(self._queue)

    def flush(self) -> int:
        """Run queued signals. Returns how many failed; failures are logged, never raised."""
        failed = 0
        queue, self._queue = self._queue, []
        self._users.clear()
        self._listings.clear()
        for label, effect in queue:
            try:
                effect()
            except Exception:  # noqa: BLE001 - downstream must never undo a committed write
                failed += 1
                logger.warning("Side effect failed: %s", label, exc_info=True)
        return failed

    def discard(self) -> None:
        self._queue.clear()
        self._users.clear()
        self._listings.clear()
