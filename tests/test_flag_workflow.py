"""Flag workflow tests (in-memory store)."""

from datetime import timedelta

import pytest

from tests.conftest import ADMIN_ID, OTHER_ID, OWNER_ID, REPORTER_ID
from trust_engine.core.errors import (
    DuplicateError,
    ForbiddenError,
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
    RateLimitedError,
    StorageFailure,
    ValidationError,
)
from trust_engine.core.moderation_policies import SYSTEM_ACTOR_ID
from trust_engine.services.collaborators import ListingRecord
from trust_engine.services.flag_service import ReviewTicket, review_ticket

SCAM_TITLE = "BUY NOW CASH ONLY WESTERN UNION xxx-xxx-xxxx"


def _add_prior_warnings(moderation, user_id: int, count: int) -> None:
    effects = moderation.ledger.new_effects()
    with moderation.store.transaction():
        for _ in range(count):
            moderation.ledger.warn(user_id, ADMIN_ID, "Earlier violation", effects)


def test_spam_flag_is_pending(moderation):
    """A flags L owned by B for SPAM: PENDING and not yet reviewed."""
    result = moderation.flags.submit(REPORTER_ID, "L1", "SPAM")

    assert result.flag.status == "PENDING"
    assert result.flag.reviewed_at is None
    assert result.flag.reason == "SPAM"
    assert result.automatic_actions == []
    assert result.ticket.priority == "low"


def test_second_flag_on_same_listing_is_duplicate(moderation):
    moderation.flags.submit(REPORTER_ID, "L1", "SPAM")
    with pytest.raises(DuplicateError):
        moderation.flags.submit(REPORTER_ID, "L1", "FAKE")


def test_cannot_flag_own_listing(moderation):
    with pytest.raises(InvalidOperationError):
        moderation.flags.submit(OWNER_ID, "L1", "SPAM")


def test_banned_reporter_is_rejected(moderation, users):
    users.set_ban_state(REPORTER_ID, True, "spam")
    with pytest.raises(ForbiddenError):
        moderation.flags.submit(REPORTER_ID, "L1", "SPAM")


def test_unknown_reporter_and_listing(moderation):
    with pytest.raises(NotFoundError):
        moderation.flags.submit(999, "L1", "SPAM")
    with pytest.raises(NotFoundError):
        moderation.flags.submit(REPORTER_ID, "missing", "SPAM")


def test_description_rules(moderation, config):
    with pytest.raises(ValidationError):
        moderation.flags.submit(REPORTER_ID, "L1", "OTHER")
    with pytest.raises(ValidationError):
        moderation.flags.submit(REPORTER_ID, "L1", "SPAM", "x" * (config.max_flag_description_length + 1))
    with pytest.raises(ValidationError):
        moderation.flags.submit(REPORTER_ID, "L1", "NOT_A_REASON")

    ok = moderation.flags.submit(REPORTER_ID, "L1", "other", "  Seller asked me to pay outside the app  ")
    assert ok.flag.reason == "OTHER"
    assert ok.flag.description == "Seller asked me to pay outside the app"


def test_rate_limit_in_trailing_window(moderation, listings, clock):
    for i in range(6):
        listings.add(ListingRecord(id=f"R{i}", user_id=OTHER_ID, title=f"Chair {i}", price_usd=20.0))

    for i in range(5):
        moderation.flags.submit(REPORTER_ID, f"R{i}", "SPAM")
    with pytest.raises(RateLimitedError):
        moderation.flags.submit(REPORTER_ID, "R5", "SPAM")

    clock.advance(hours=25)
    assert moderation.flags.submit(REPORTER_ID, "R5", "SPAM").flag.status == "PENDING"


def test_critical_content_is_actioned_automatically(moderation, listings, users, notifier, cache):
    """Critical risk bans the owner before removing the content and upholds the flag as system."""
    listings.add(ListingRecord(id="SCAM", user_id=OWNER_ID, title=SCAM_TITLE, price_usd=0.5))

    result = moderation.flags.submit(REPORTER_ID, "SCAM", "SPAM")

    assert result.analysis.recommended_action.severity == "critical"
    assert result.flag.status == "UPHELD"
    assert result.flag.reviewed_by == SYSTEM_ACTOR_ID
    assert result.flag.reviewed_at is not None

    ban, removal = result.automatic_actions
    assert ban.action_type == "BAN"
    assert removal.action_type == "CONTENT_REMOVAL"
    assert ban.id < removal.id
    assert ban.admin_id == SYSTEM_ACTOR_ID
    assert ban.duration_days == moderation.flags.config.automatic_ban_duration_days

    assert users.find_user(OWNER_ID).is_banned
    assert moderation.ledger.is_banned(OWNER_ID)
    # ban cascades to every active listing of the owner
    assert {item.status for item in listings.list_user_listings(OWNER_ID)} == {"removed"}
    assert notifier.events(OWNER_ID) == ["moderation.ban", "moderation.content_removed"]
    assert "SCAM" in cache.listings and OWNER_ID in cache.users


def test_automatic_action_lost_to_a_reviewer_changes_nothing(moderation, listings, users, notifier, monkeypatch):
    """When the flag cannot be claimed, no ban, removal or flag survives."""
    listings.add(ListingRecord(id="SCAM", user_id=OWNER_ID, title=SCAM_TITLE, price_usd=0.5))
    monkeypatch.setattr(moderation.store, "resolve_flag", lambda *args, **kwargs: None)

    with pytest.raises(InvalidStateError):
        moderation.flags.submit(REPORTER_ID, "SCAM", "SPAM")

    assert moderation.ledger.history(OWNER_ID) == []
    assert not users.find_user(OWNER_ID).is_banned
    assert {item.status for item in listings.list_user_listings(OWNER_ID)} == {"active"}
    assert moderation.store.find_flag("SCAM", REPORTER_ID) is None
    assert notifier.sent == []


def test_failed_automatic_action_rolls_back_and_retry_bans(moderation, listings, users, notifier, monkeypatch):
    """A storage failure mid-way restores every projection; the retry completes the ban."""
    listings.add(ListingRecord(id="SCAM", user_id=OWNER_ID, title=SCAM_TITLE, price_usd=0.5))
    remove_content = moderation.ledger.remove_content
    calls = []

    def failing_once(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            raise StorageFailure("Moderation storage is unavailable")
        return remove_content(*args, **kwargs)

    monkeypatch.setattr(moderation.ledger, "remove_content", failing_once)

    with pytest.raises(StorageFailure):
        moderation.flags.submit(REPORTER_ID, "SCAM", "SPAM")

    assert moderation.store.count_actions() == 0
    assert not users.find_user(OWNER_ID).is_banned
    assert users.find_user(OWNER_ID).ban_reason is None
    assert {item.status for item in listings.list_user_listings(OWNER_ID)} == {"active"}
    assert moderation.store.find_flag("SCAM", REPORTER_ID) is None
    assert notifier.sent == []

    retry = moderation.flags.submit(REPORTER_ID, "SCAM", "SPAM")

    assert retry.flag.status == "UPHELD"
    assert [a.action_type for a in retry.automatic_actions] == ["BAN", "CONTENT_REMOVAL"]
    assert moderation.ledger.is_banned(OWNER_ID)
    assert users.find_user(OWNER_ID).is_banned


def test_failed_warning_restores_warning_count(moderation, users, monkeypatch):
    flag = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag

    def unavailable(*args, **kwargs):
        raise StorageFailure("Moderation storage is unavailable")

    monkeypatch.setattr(moderation.ledger, "remove_content", unavailable)
    with pytest.raises(StorageFailure):
        moderation.flags.review(flag.id, ADMIN_ID, "UPHELD")

    assert users.find_user(OWNER_ID).warning_count == 0
    assert moderation.store.get_flag(flag.id).status == "PENDING"


@pytest.mark.parametrize(
    "score,priority,sla_hours,approvals",
    [
        (0, "low", 24, 1),
        (19, "low", 24, 1),
        (20, "medium", 12, 1),
        (40, "high", 4, 1),
        (59, "high", 4, 1),
        (60, "urgent", 1, 1),
        (79, "urgent", 1, 1),
        (80, "urgent", 1, 2),
        (100, "urgent", 1, 2),
    ],
)
def test_review_ticket_bands(score, priority, sla_hours, approvals):
    assert review_ticket(score) == ReviewTicket(priority=priority, sla_hours=sla_hours, required_approvals=approvals)


def test_uphold_first_offence_warns(moderation, users, listings):
    flag = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag
    outcome = moderation.flags.review(flag.id, ADMIN_ID, "UPHELD", "Confirmed spam")

    assert outcome.flag.status == "UPHELD"
    assert outcome.flag.reviewed_by == ADMIN_ID
    penalty, removal = outcome.actions
    assert penalty.action_type == "WARNING"
    assert penalty.duration_days is None
    assert removal.action_type == "CONTENT_REMOVAL"
    assert users.find_user(OWNER_ID).warning_count == 1
    assert not users.find_user(OWNER_ID).is_banned
    assert listings.find_listing("L1").status == "removed"
    assert listings.find_listing("L2").status == "active"


def test_uphold_at_ladder_ceiling_bans_for_max_duration(moderation, users, clock):
    _add_prior_warnings(moderation, OWNER_ID, 4)
    flag = moderation.flags.submit(REPORTER_ID, "L1", "FAKE").flag

    outcome = moderation.flags.review(flag.id, ADMIN_ID, "upheld")

    penalty = outcome.actions[0]
    assert penalty.action_type == "BAN"
    assert penalty.duration_days == 30
    assert penalty.expires_at == clock.now + timedelta(days=30)
    assert users.find_user(OWNER_ID).is_banned


def test_dismiss_writes_nothing(moderation):
    flag = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag
    outcome = moderation.flags.review(flag.id, ADMIN_ID, "DISMISSED", "Looks fine")

    assert outcome.flag.status == "DISMISSED"
    assert outcome.actions == []
    assert moderation.ledger.history(OWNER_ID) == []


def test_review_guards(moderation):
    flag = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag

    with pytest.raises(ForbiddenError):
        moderation.flags.review(flag.id, OTHER_ID, "UPHELD")
    with pytest.raises(NotFoundError):
        moderation.flags.review(12345, ADMIN_ID, "UPHELD")
    with pytest.raises(ValidationError):
        moderation.flags.review(flag.id, ADMIN_ID, "PENDING")

    moderation.flags.review(flag.id, ADMIN_ID, "DISMISSED")
    with pytest.raises(InvalidStateError):
        moderation.flags.review(flag.id, ADMIN_ID, "UPHELD")


def test_review_many_collects_per_flag_errors(moderation):
    first = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag
    second = moderation.flags.submit(OTHER_ID, "L1", "SPAM").flag
    moderation.flags.review(second.id, ADMIN_ID, "DISMISSED")

    result = moderation.flags.review_many([first.id, second.id, 999], ADMIN_ID, "DISMISSED")

    assert [o.flag.id for o in result.processed] == [first.id]
    assert set(result.errors) == {second.id, 999}


def test_review_many_requires_admin(moderation):
    flag = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag
    with pytest.raises(ForbiddenError):
        moderation.flags.review_many([flag.id], REPORTER_ID, "DISMISSED")


def test_urgent_queue_holds_old_pending_flags(moderation, clock):
    flag = moderation.flags.submit(REPORTER_ID, "L1", "SPAM").flag
    assert moderation.flags.urgent() == []

    clock.advance(hours=73)
    assert [f.id for f in moderation.flags.urgent()] == [flag.id]
    assert [f.id for f in moderation.flags.pending()] == [flag.id]
