"""Blocked-word management tests."""

import pytest

from tests.conftest import ADMIN_ID, OWNER_ID, REPORTER_ID
from trust_engine.core.errors import DuplicateError, ForbiddenError, NotFoundError, ValidationError
from trust_engine.services.collaborators import ListingRecord


def test_add_normalizes_and_rejects_duplicates(moderation):
    word = moderation.blocked_words.add("  Counterfeit ", "block", ADMIN_ID)
    assert word.word == "counterfeit"
    assert word.severity == "BLOCK"
    assert word.is_active

    with pytest.raises(DuplicateError):
        moderation.blocked_words.add("COUNTERFEIT", "WARNING", ADMIN_ID)


def test_add_validation(moderation, config):
    with pytest.raises(ForbiddenError):
        moderation.blocked_words.add("fake", "WARNING", REPORTER_ID)
    with pytest.raises(ValidationError):
        moderation.blocked_words.add("   ", "WARNING", ADMIN_ID)
    with pytest.raises(ValidationError):
        moderation.blocked_words.add("x" * (config.max_blocked_word_length + 1), "WARNING", ADMIN_ID)
    with pytest.raises(ValidationError):
        moderation.blocked_words.add("fake", "SEVERE", ADMIN_ID)


def test_toggle_severity_and_delete(moderation):
    word = moderation.blocked_words.add("replica", "WARNING", ADMIN_ID)

    assert moderation.blocked_words.toggle(word.id, ADMIN_ID).is_active is False
    assert moderation.blocked_words.list_words(active_only=True) == []
    assert moderation.blocked_words.toggle(word.id, ADMIN_ID).is_active is True

    assert moderation.blocked_words.set_severity(word.id, "BLOCK", ADMIN_ID).severity == "BLOCK"

    moderation.blocked_words.remove(word.id, ADMIN_ID)
    assert moderation.blocked_words.list_words() == []
    with pytest.raises(NotFoundError):
        moderation.blocked_words.remove(word.id, ADMIN_ID)
    with pytest.raises(NotFoundError):
        moderation.blocked_words.toggle(word.id, ADMIN_ID)


def test_active_words_feed_flag_scoring(moderation, listings):
    moderation.blocked_words.add("counterfeit", "BLOCK", ADMIN_ID)
    moderation.blocked_words.add("stolen", "BLOCK", ADMIN_ID)
    listings.add(ListingRecord(id="W1", user_id=OWNER_ID, title="Stolen counterfeit watch", price_usd=120.0))

    result = moderation.flags.submit(REPORTER_ID, "W1", "INAPPROPRIATE")

    blocked = [v for v in result.analysis.violations if v.type == "blocked_words"]
    assert blocked and blocked[0].severity == "critical"
    assert result.analysis.risk_score == 40
    assert result.flag.status == "PENDING"
