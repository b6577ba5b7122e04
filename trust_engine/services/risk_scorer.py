"""Content risk scoring for listings.

Four detectors (blocked words, spam, scam, inappropriate content) each score a
listing on their own. A detector that fires adds its raw score to the total,
which is clamped to 0-100 and mapped to a recommended action. Everything here
is side-effect free; the weights come from ``ScoringRules``.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Iterable

from trust_engine.core.config import ScoringRules, settings
from trust_engine.models.blocked_word import BlockedWord
from trust_engine.services.collaborators import ListingRecord
from trust_engine.services.content_filter import FilterResult, filter_text

# External contact info: phone numbers, emails, messenger handles
_CONTACT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b\d{10,}\b"),
    re.compile(r"\b\d{3}[-.\s]\d{3}[-.\s]\d{4}\b"),
    re.compile(r"[\w.+-]*@\w+\.\w+"),
    re.compile(r"\b(?:t|telegram)\.me/\w+", re.IGNORECASE),
    re.compile(r"\b(?:whatsapp|viber|wechat|signal me)\b", re.IGNORECASE),
]


class RecommendedAction(str, enum.Enum):
    BAN = "ban"
    CONTENT_REMOVAL = "content_removal"
    WARNING = "warning"
    ESCALATE = "escalate"
    NONE = "none"


@dataclass
class DetectorResult:
    """Output of a single detector."""

    fired: bool = False
    score: int = 0
    severity: str | None = None
    confidence: float = 0.0
    reasons: list[str] = field(default_factory=list)


@dataclass
class Violation:
    type: str  # blocked_words | spam | scam | inappropriate
    severity: str
    details: str
    confidence: float
    score: int


@dataclass
class Decision:
    action: RecommendedAction
    severity: str
    automatic: bool
    reason: str


@dataclass
class ContentAnalysis:
    violations: list[Violation]
    recommended_action: Decision
    risk_score: int

    @property
    def has_violations(self) -> bool:
        return bool(self.violations)


def listing_text(listing: ListingRecord) -> str:
    return " ".join(part for part in (listing.title, listing.description) if part)


def _has_keyword(text: str, keyword: str) -> bool:
    """Whole-word keyword match; simple plurals count."""
    return re.search(rf"\b{re.escape(keyword)}(?:s|es)?\b", text) is not None


def blocked_word_band(result: FilterResult) -> str | None:
    """Map filter matches to a severity band."""
    if not result.has_violations:
        return None
    block_count = len(result.block_words)
    if block_count >= 2:
        return "critical"
    if block_count == 1:
        return "high"
    if len(result.warning_words) >= 2:
        return "medium"
    return "low"


def detect_blocked_words(result: FilterResult, rules: ScoringRules) -> DetectorResult:
    band = blocked_word_band(result)
    if band is None:
        return DetectorResult()
    return DetectorResult(
        fired=True,
        score=rules.blocked_word_points.get(band, 0),
        severity=band,
        confidence=0.9,
        reasons=[f"Blocked words detected: {', '.join(result.violations)}"],
    )


def detect_spam(text: str, price_usd: float | None, rules: ScoringRules) -> DetectorResult:
    reasons: list[str] = []
    score = 0

    letters = [ch for ch in text if ch.isalpha()]
    if letters:
        caps = sum(1 for ch in letters if ch.isupper())
        if caps / len(letters) > rules.spam_caps_ratio:
            reasons.append("Excessive use of capital letters")
            score += rules.spam_caps_points

    run = max(rules.spam_repeat_run, 2)
    if re.search(rf"(\S)\1{{{run - 1},}}", text):
        reasons.append("Repeated characters detected")
        score += rules.spam_repeat_points

    if price_usd is not None and 0 <= price_usd < rules.spam_low_price_usd:
        reasons.append("Suspiciously low price")
        score += rules.spam_low_price_points

    if any(p.search(text) for p in _CONTACT_PATTERNS):
        reasons.append("External contact information detected")
        score += rules.spam_contact_points

    fired = score >= rules.spam_fire_score
    return DetectorResult(
        fired=fired,
        score=score,
        severity=("high" if score >= rules.spam_high_score else "medium") if fired else None,
        confidence=min(0.9, score / 100),
        reasons=reasons,
    )


def detect_scam(text: str, price_usd: float | None, category: str | None, rules: ScoringRules) -> DetectorResult:
    reasons: list[str] = []
    score = 0
    lowered = text.lower()

    for phrase in rules.scam_phrases:
        if phrase in lowered:
            reasons.append(f'Suspicious phrase: "{phrase}"')
            score += rules.scam_phrase_points

    high_value = (category or "").strip().lower() in rules.scam_high_value_categories or any(
        _has_keyword(lowered, item) for item in rules.scam_high_value_items
    )
    if high_value and price_usd is not None and 0 <= price_usd < rules.scam_unrealistic_price_usd:
        reasons.append("Unrealistically low price for expensive item")
        score += rules.scam_price_points

    urgency = [w for w in rules.scam_urgency_words if w in lowered]
    if len(urgency) >= rules.scam_urgency_min_matches:
        reasons.append("Multiple urgency tactics detected")
        score += rules.scam_urgency_points

    fired = score >= rules.scam_fire_score
    severity = None
    if fired:
        if score >= rules.scam_critical_score:
            severity = "critical"
        elif score >= rules.scam_high_score:
            severity = "high"
        else:
            severity = "medium"
    return DetectorResult(
        fired=fired,
        score=score,
        severity=severity,
        confidence=min(0.95, score / 100),
        reasons=reasons,
    )


def detect_inappropriate(text: str, rules: ScoringRules) -> DetectorResult:
    reasons: list[str] = []
    score = 0
    lowered = text.lower()

    if any(_has_keyword(lowered, kw) for kw in rules.adult_keywords):
        reasons.append("Adult content detected")
        score += rules.adult_points

    if any(_has_keyword(lowered, item) for item in rules.prohibited_items):
        reasons.append("Prohibited items detected")
        score += rules.prohibited_points

    fired = score >= rules.inappropriate_fire_score
    return DetectorResult(
        fired=fired,
        score=score,
        severity=("high" if score >= rules.inappropriate_high_score else "medium") if fired else None,
        confidence=min(0.85, score / 100),
        reasons=reasons,
    )


def decide(risk_score: int, rules: ScoringRules) -> Decision:
    """Map an aggregate score to an action. Highest threshold wins."""
    if risk_score >= rules.ban_threshold:
        return Decision(RecommendedAction.BAN, "critical", True, "Critical violations detected")
    if risk_score >= rules.removal_threshold:
        return Decision(RecommendedAction.CONTENT_REMOVAL, "high", True, "High-risk content detected")
    if risk_score >= rules.warning_threshold:
        return Decision(RecommendedAction.WARNING, "medium", False, "Moderate violations detected")
    if risk_score >= rules.escalate_threshold:
        return Decision(RecommendedAction.ESCALATE, "low", False, "Potential violations require human review")
    return Decision(RecommendedAction.NONE, "low", False, "No significant violations detected")


def analyze(
    listing: ListingRecord,
    words: Iterable[BlockedWord] = (),
    rules: ScoringRules | None = None,
) -> ContentAnalysis:
    """Score a listing and recommend a moderation action."""
    rules = rules or settings.scoring
    text = listing_text(listing)

    detectors = [
        ("blocked_words", detect_blocked_words(filter_text(text, words), rules)),
        ("spam", detect_spam(text, listing.price_usd, rules)),
        ("scam", detect_scam(text, listing.price_usd, listing.category, rules)),
        ("inappropriate", detect_inappropriate(text, rules)),
    ]

    violations = [
        Violation(
            type=name,
            severity=res.severity or "low",
            details=", ".join(res.reasons),
            confidence=res.confidence,
            score=res.score,
        )
        for name, res in detectors
        if res.fired
    ]
    risk_score = max(0, min(100, sum(v.score for v in violations)))
    return ContentAnalysis(
        violations=violations,
        recommended_action=decide(risk_score, rules),
        risk_score=risk_score,
    )
