"""Delivery of moderation notifications and cache invalidation."""

from __future__ import annotations

import logging
from typing import Any

import redis

from trust_engine.core.ws_manager import ConnectionManager, ws_manager

logger = logging.getLogger(__name__)


class WebSocketNotifier:
    """Pushes moderation events to the affected user's open sockets."""

    def __init__(self, manager: ConnectionManager | None = None) -> None:
        self.manager = manager or ws_manager

    def notify(self, user_id: int, event: str, details: dict[str, Any]) -> None:
        if not self.manager.dispatch(user_id, event, details):
            logger.debug("No live socket for user=%s; %s not pushed", user_id, event)


class RedisCacheInvalidator:
    """Drops cached user and listing views after a moderation write.

    Keys follow ``<prefix>user:<id>``, ``<prefix>user:<id>:listings`` and
    ``<prefix>listing:<id>``.
    """

    def __init__(self, client: redis.Redis, prefix: str = "marketplace:") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "marketplace:") -> "RedisCacheInvalidator":
        return cls(redis.Redis.from_url(url, socket_timeout=2), prefix=prefix)

    def invalidate_user(self, user_id: int) -> None:
        self.client.delete(f"{self.prefix}user:{user_id}", f"{self.prefix}user:{user_id}:listings")

    def invalidate_listing(self, listing_id: str) -> None:
        self.client.delete(f"{self.prefix}listing:{listing_id}")
