"""Read-only moderation statistics.

Flag and appeal success rates come from the same calculation so the two
numbers on the dashboard can be compared directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from trust_engine.core.clock import utcnow
from trust_engine.core.config import Settings, settings
from trust_engine.models import ActionType, AppealStatus, FlagReason, FlagStatus
from trust_engine.storage.base import ModerationStore


@dataclass
class ReviewStats:
    total: int
    pending: int
    accepted: int  # upheld flags / approved appeals
    rejected: int  # dismissed flags / denied appeals
    success_rate: float | None
    avg_review_hours: float | None


@dataclass
class ModerationStats:
    flags: ReviewStats
    appeals: ReviewStats
    urgent_flags: int
    urgent_appeals: int
    expired_appeals: int
    flags_this_week: int
    flags_last_week: int
    weekly_change_percent: float | None
    flags_by_reason: dict[str, int] = field(default_factory=dict)
    actions_last_24h: dict[str, int] = field(default_factory=dict)


def success_rate(accepted: int, rejected: int) -> float | None:
    """Share of decided items that went the submitter's way, as a percentage."""
    decided = accepted + rejected
    if decided == 0:
        return None
    return round(accepted / decided * 100, 1)


def _average(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), 1)


class ModerationStatsView:
    def __init__(
        self,
        store: ModerationStore,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.config = config or settings
        self.clock = clock

    def _flag_stats(self) -> ReviewStats:
        upheld = self.store.count_flags(status=FlagStatus.UPHELD.value)
        dismissed = self.store.count_flags(status=FlagStatus.DISMISSED.value)
        return ReviewStats(
            total=self.store.count_flags(),
            pending=self.store.count_flags(status=FlagStatus.PENDING.value),
            accepted=upheld,
            rejected=dismissed,
            success_rate=success_rate(upheld, dismissed),
            avg_review_hours=_average(self.store.flag_review_hours()),
        )

    def _appeal_stats(self) -> ReviewStats:
        approved = self.store.count_appeals(status=AppealStatus.APPROVED.value)
        denied = self.store.count_appeals(status=AppealStatus.DENIED.value)
        return ReviewStats(
            total=self.store.count_appeals(),
            pending=self.store.count_appeals(status=AppealStatus.PENDING.value),
            accepted=approved,
            rejected=denied,
            success_rate=success_rate(approved, denied),
            avg_review_hours=_average(self.store.appeal_review_hours()),
        )

    def compute(self) -> ModerationStats:
        now = self.clock()
        window = timedelta(days=self.config.appeal_deadline_days)
        margin = timedelta(days=self.config.appeal_urgent_days_before_deadline)
        pending_appeal = AppealStatus.PENDING.value

        expired = self.store.count_appeals(status=pending_appeal, created_before=now - window)
        near_deadline = self.store.count_appeals(status=pending_appeal, created_before=now - window + margin)

        week_start = now - timedelta(days=7)
        this_week = self.store.count_flags(created_after=week_start)
        last_week = self.store.count_flags(created_after=week_start - timedelta(days=7), created_before=week_start)
        change = round((this_week - last_week) / last_week * 100, 1) if last_week else None

        day_ago = now - timedelta(hours=24)
        return ModerationStats(
            flags=self._flag_stats(),
            appeals=self._appeal_stats(),
            urgent_flags=self.store.count_flags(
                status=FlagStatus.PENDING.value,
                created_before=now - timedelta(hours=self.config.urgent_flag_age_hours),
            ),
            urgent_appeals=near_deadline - expired,
            expired_appeals=expired,
            flags_this_week=this_week,
            flags_last_week=last_week,
            weekly_change_percent=change,
            flags_by_reason={r.value: self.store.count_flags(reason=r.value) for r in FlagReason},
            actions_last_24h={
                t.value: self.store.count_actions(action_types=[t.value], created_after=day_ago) for t in ActionType
            },
        )
