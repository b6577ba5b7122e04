"""Blocked-word content filter.

Plain substring matching, case-insensitive, so "b a d w o r d"-style spacing
tricks on single words are not caught but embedded words ("xbadwordx") are.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from trust_engine.models.blocked_word import BlockedWord, WordSeverity


@dataclass
class WordMatch:
    word: str
    severity: str
    position: int


@dataclass
class FilterResult:
    has_violations: bool = False
    violations: list[str] = field(default_factory=list)
    should_block: bool = False
    severity: str | None = None  # BLOCK | WARNING | None
    filtered_text: str = ""
    matches: list[WordMatch] = field(default_factory=list)

    @property
    def block_words(self) -> list[str]:
        return sorted({m.word for m in self.matches if m.severity == WordSeverity.BLOCK.value})

    @property
    def warning_words(self) -> list[str]:
        return sorted({m.word for m in self.matches if m.severity == WordSeverity.WARNING.value})


def normalize_word(word: str) -> str:
    return word.strip().lower()


def _positions(haystack: str, needle: str) -> list[int]:
    found = []
    start = haystack.find(needle)
    while start != -1:
        found.append(start)
        start = haystack.find(needle, start + 1)
    return found


def filter_text(text: str | None, words: Iterable[BlockedWord]) -> FilterResult:
    """Scan ``text`` against the active entries of ``words``."""
    text = text or ""
    lowered = text.lower()
    result = FilterResult(filtered_text=text)
    masked = list(text)

    for entry in words:
        if not entry.is_active:
            continue
        needle = normalize_word(entry.word)
        if not needle:
            continue
        positions = _positions(lowered, needle)
        if not positions:
            continue

        result.violations.append(needle)
        if entry.severity == WordSeverity.BLOCK.value:
            result.should_block = True
        for pos in positions:
            result.matches.append(WordMatch(word=needle, severity=entry.severity, position=pos))
            masked[pos : pos + len(needle)] = "*" * len(needle)

    result.has_violations = bool(result.violations)
    if result.should_block:
        result.severity = WordSeverity.BLOCK.value
    elif result.has_violations:
        result.severity = WordSeverity.WARNING.value
    result.filtered_text = "".join(masked)
    result.matches.sort(key=lambda m: m.position)
    return result
