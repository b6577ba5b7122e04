"""Wiring of the moderation components around one store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from trust_engine.core.clock import utcnow
from trust_engine.core.config import Settings, settings
from trust_engine.services.appeal_service import AppealWorkflow
from trust_engine.services.blocked_word_service import BlockedWordService
from trust_engine.services.collaborators import (
    CacheInvalidator,
    ListingDirectory,
    NullCacheInvalidator,
    Notifier,
    UserDirectory,
)
from trust_engine.services.directory import SqlListingDirectory, SqlUserDirectory
from trust_engine.services.escalation import EscalationPolicy
from trust_engine.services.flag_service import FlagWorkflow
from trust_engine.services.ledger import ModerationLedger
from trust_engine.services.notifications import RedisCacheInvalidator, WebSocketNotifier
from trust_engine.services.stats_service import ModerationStatsView
from trust_engine.storage.base import ModerationStore
from trust_engine.storage.sql import SqlModerationStore

logger = logging.getLogger(__name__)

_cache: CacheInvalidator | None = None


@dataclass
class ModerationEngine:
    store: ModerationStore
    users: UserDirectory
    listings: ListingDirectory
    ledger: ModerationLedger
    flags: FlagWorkflow
    appeals: AppealWorkflow
    blocked_words: BlockedWordService
    stats: ModerationStatsView


def build_engine(
    store: ModerationStore,
    users: UserDirectory,
    listings: ListingDirectory,
    cache: CacheInvalidator | None = None,
    notifier: Notifier | None = None,
    config: Settings | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> ModerationEngine:
    config = config or settings
    ledger = ModerationLedger(store, users, listings, cache, notifier, config, clock)
    policy = EscalationPolicy(config.escalation_ladder)
    return ModerationEngine(
        store=store,
        users=users,
        listings=listings,
        ledger=ledger,
        flags=FlagWorkflow(ledger, users, listings, policy, config, clock),
        appeals=AppealWorkflow(ledger, users, config, clock),
        blocked_words=BlockedWordService(store, users, config, clock),
        stats=ModerationStatsView(store, config, clock),
    )


def default_cache(config: Settings | None = None) -> CacheInvalidator:
    """Redis invalidator when REDIS_URL is set, otherwise a no-op."""
    global _cache
    config = config or settings
    if _cache is None:
        if config.redis_url:
            _cache = RedisCacheInvalidator.from_url(config.redis_url, prefix=config.cache_key_prefix)
            logger.info("Cache invalidation enabled (prefix=%s)", config.cache_key_prefix)
        else:
            _cache = NullCacheInvalidator()
    return _cache


def build_sql_engine(db: Session, config: Settings | None = None) -> ModerationEngine:
    """Engine over the marketplace database; everything shares ``db``."""
    return build_engine(
        SqlModerationStore(db),
        SqlUserDirectory(db),
        SqlListingDirectory(db),
        cache=default_cache(config),
        notifier=WebSocketNotifier(),
        config=config,
    )
