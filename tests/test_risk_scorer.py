"""Content risk scorer tests."""

import pytest

from trust_engine.core.config import ScoringRules
from trust_engine.models import BlockedWord
from trust_engine.services.collaborators import ListingRecord
from trust_engine.services.content_filter import filter_text
from trust_engine.services.risk_scorer import (
    RecommendedAction,
    analyze,
    decide,
    detect_blocked_words,
    detect_inappropriate,
    detect_scam,
    detect_spam,
)

RULES = ScoringRules()


def _listing(title: str, description: str = "", price: float | None = 50.0, category: str | None = None):
    return ListingRecord(id="L", user_id=9, title=title, description=description, price_usd=price, category=category)


def test_scam_listing_scenario_recommends_ban():
    """Shouting, payment-bait phrases and a $0.50 price add up to an automatic ban."""
    listing = _listing("BUY NOW CASH ONLY WESTERN UNION xxx-xxx-xxxx", price=0.5)
    result = analyze(listing, [], RULES)

    assert result.risk_score >= 80
    assert result.recommended_action.action == RecommendedAction.BAN
    assert result.recommended_action.action.value == "ban"
    assert result.recommended_action.severity == "critical"
    assert result.recommended_action.automatic is True
    assert {v.type for v in result.violations} == {"spam", "scam", "inappropriate"}


def test_clean_listing_scores_zero():
    result = analyze(_listing("Vintage desk lamp", "Brass, works fine."), [], RULES)
    assert result.risk_score == 0
    assert not result.has_violations
    assert result.recommended_action.action == RecommendedAction.NONE


def test_caps_ratio_counts_letters_only():
    """Digits and punctuation do not dilute the caps ratio."""
    res = detect_spam("SALE 2024 !!", 50.0, RULES)
    assert res.score == RULES.spam_caps_points
    assert res.fired is False


def test_spam_contact_and_price_fire():
    res = detect_spam("call me 555-123-4567", 0.5, RULES)
    assert res.score == RULES.spam_contact_points + RULES.spam_low_price_points
    assert res.fired
    assert res.severity == "medium"


def test_spam_repeated_characters():
    res = detect_spam("great deal!!!!!", 50.0, RULES)
    assert "Repeated characters detected" in res.reasons


def test_scam_unrealistic_price_for_high_value_item():
    res = detect_scam("iphone 15 pro", 5.0, None, RULES)
    assert res.score == RULES.scam_price_points
    assert res.fired
    assert res.severity == "medium"


def test_scam_high_value_category_and_urgency():
    res = detect_scam("urgent, hurry before it is gone", 5.0, "Electronics", RULES)
    assert res.score == RULES.scam_price_points + RULES.scam_urgency_points
    assert res.severity == "high"


def test_keyword_does_not_match_inside_longer_word():
    """'car' is a high-value item but 'cardigan' is not a car."""
    res = detect_scam("wool cardigan", 5.0, None, RULES)
    assert res.score == 0


def test_inappropriate_bands():
    assert detect_inappropriate("hunting gun", RULES).severity == "medium"
    both = detect_inappropriate("adult magazines and guns", RULES)
    assert both.score == RULES.adult_points + RULES.prohibited_points
    assert both.severity == "high"
    assert not detect_inappropriate("garden hose", RULES).fired


def test_blocked_word_bands():
    words = [
        BlockedWord(word="counterfeit", severity="BLOCK", added_by=1, is_active=True),
        BlockedWord(word="stolen", severity="BLOCK", added_by=1, is_active=True),
        BlockedWord(word="replica", severity="WARNING", added_by=1, is_active=True),
    ]
    critical = detect_blocked_words(filter_text("stolen counterfeit", words), RULES)
    assert (critical.severity, critical.score) == ("critical", 40)
    high = detect_blocked_words(filter_text("counterfeit", words), RULES)
    assert (high.severity, high.score) == ("high", 25)
    low = detect_blocked_words(filter_text("replica", words), RULES)
    assert (low.severity, low.score) == ("low", 5)


@pytest.mark.parametrize(
    "score,expected",
    [
        (100, RecommendedAction.BAN),
        (80, RecommendedAction.BAN),
        (79, RecommendedAction.CONTENT_REMOVAL),
        (60, RecommendedAction.CONTENT_REMOVAL),
        (40, RecommendedAction.WARNING),
        (20, RecommendedAction.ESCALATE),
        (19, RecommendedAction.NONE),
    ],
)
def test_decision_thresholds(score, expected):
    assert decide(score, RULES).action == expected


def test_score_is_monotonic_in_violation_categories():
    """Adding another category of violation never lowers the score."""
    words = [BlockedWord(word="counterfeit", severity="BLOCK", added_by=1, is_active=True)]
    steps = [
        _listing("Leather bag"),
        _listing("Leather bag", "counterfeit"),
        _listing("Leather bag", "counterfeit, call 555-123-4567", price=0.5),
        _listing("Leather bag", "counterfeit, call 555-123-4567, cash only western union", price=0.5),
        _listing("Leather bag", "counterfeit, call 555-123-4567, cash only western union, drugs", price=0.5),
    ]
    scores = [analyze(listing, words, RULES).risk_score for listing in steps]
    assert scores == sorted(scores)
    assert scores[0] == 0
    assert scores[-1] == 100


def test_thresholds_are_configurable():
    strict = ScoringRules(ban_threshold=101, removal_threshold=101)
    listing = _listing("BUY NOW CASH ONLY WESTERN UNION xxx-xxx-xxxx", price=0.5)
    assert analyze(listing, [], strict).recommended_action.action == RecommendedAction.WARNING
