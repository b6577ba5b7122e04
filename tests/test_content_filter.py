"""Blocked-word filter tests."""

from trust_engine.models import BlockedWord
from trust_engine.services.content_filter import filter_text, normalize_word


def _word(word: str, severity: str = "WARNING", active: bool = True) -> BlockedWord:
    return BlockedWord(word=word, severity=severity, added_by=1, is_active=active)


def test_match_is_case_insensitive_and_embedded():
    """Substring scan catches words inside other words and in any case."""
    result = filter_text("Totally NOT a SCAMMER here", [_word("scam")])
    assert result.has_violations
    assert result.violations == ["scam"]
    assert result.matches[0].position == 14


def test_block_word_sets_should_block():
    result = filter_text("counterfeit bag", [_word("counterfeit", "BLOCK"), _word("bag")])
    assert result.should_block is True
    assert result.severity == "BLOCK"
    assert result.block_words == ["counterfeit"]
    assert result.warning_words == ["bag"]


def test_warning_only_is_not_blocking():
    result = filter_text("cheap replica watch", [_word("replica")])
    assert result.has_violations
    assert result.should_block is False
    assert result.severity == "WARNING"


def test_inactive_words_are_ignored():
    result = filter_text("replica watch", [_word("replica", "BLOCK", active=False)])
    assert not result.has_violations
    assert result.severity is None


def test_matches_are_masked():
    result = filter_text("Replica and replica", [_word("replica")])
    assert result.filtered_text == "******* and *******"
    assert [m.position for m in result.matches] == [0, 12]


def test_empty_text_has_no_violations():
    result = filter_text(None, [_word("anything")])
    assert not result.has_violations
    assert result.filtered_text == ""


def test_normalize_word():
    assert normalize_word("  FaKe ") == "fake"
