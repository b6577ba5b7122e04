"""Moderation statistics tests."""

from tests.conftest import ADMIN_ID, OTHER_ID, OWNER_ID, REPORTER_ID
from trust_engine.services.stats_service import success_rate


def test_success_rate_is_shared_formula():
    assert success_rate(0, 0) is None
    assert success_rate(1, 3) == 25.0
    assert success_rate(2, 1) == 66.7


def test_dashboard_counts(moderation, clock):
    upheld = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag
    dismissed = moderation.flags.submit(OTHER_ID, "L1", "FAKE").flag
    moderation.flags.submit(REPORTER_ID, "L2", "SPAM")

    clock.advance(hours=2)
    review = moderation.flags.review(upheld.id, ADMIN_ID, "UPHELD")
    moderation.flags.review(dismissed.id, ADMIN_ID, "DISMISSED")

    warning = review.actions[0]
    appeal = moderation.appeals.submit(OWNER_ID, warning.id, "It was a mistake")
    moderation.appeals.review(appeal.id, ADMIN_ID, "APPROVED")

    stats = moderation.stats.compute()

    assert stats.flags.total == 3
    assert stats.flags.pending == 1
    assert stats.flags.success_rate == 50.0
    assert stats.flags.avg_review_hours == 2.0
    assert stats.appeals.accepted == 1
    assert stats.appeals.success_rate == 100.0
    assert stats.flags_by_reason["SPAM"] == 2
    assert stats.flags_by_reason["OTHER"] == 0
    assert stats.actions_last_24h["WARNING"] == 1
    assert stats.actions_last_24h["CONTENT_REMOVAL"] == 1
    assert stats.flags_this_week == 3
    assert stats.flags_last_week == 0
    assert stats.weekly_change_percent is None
    assert stats.urgent_flags == 0

    clock.advance(hours=80)
    assert moderation.stats.compute().urgent_flags == 1
