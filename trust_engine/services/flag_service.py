"""Flag workflow: report intake, automatic action, human review."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable

from trust_engine.core.clock import as_utc, utcnow
from trust_engine.core.config import Settings, settings
from trust_engine.core.errors import (
    DuplicateError,
    ForbiddenError,
    InvalidOperationError,
    InvalidStateError,
    ModerationError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from trust_engine.core.moderation_policies import SYSTEM_ACTOR_ID
from trust_engine.models import ActionType, Flag, FlagReason, FlagStatus, ModerationAction
from trust_engine.services.collaborators import ListingDirectory, ListingRecord, UserDirectory
from trust_engine.services.escalation import EscalationPolicy
from trust_engine.services.ledger import ModerationLedger
from trust_engine.services.risk_scorer import ContentAnalysis, analyze

logger = logging.getLogger(__name__)


@dataclass
class ReviewTicket:
    """Routing hints for the human review queue."""

    priority: str  # urgent | high | medium | low
    sla_hours: int
    required_approvals: int


@dataclass
class FlagSubmission:
    flag: Flag
    analysis: ContentAnalysis
    ticket: ReviewTicket
    automatic_actions: list[ModerationAction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class FlagReviewOutcome:
    flag: Flag
    actions: list[ModerationAction] = field(default_factory=list)


@dataclass
class BulkReviewResult:
    processed: list[FlagReviewOutcome] = field(default_factory=list)
    errors: dict[int, str] = field(default_factory=dict)


def review_ticket(risk_score: int) -> ReviewTicket:
    if risk_score >= 60:
        priority, sla = "urgent", 1
    elif risk_score >= 40:
        priority, sla = "high", 4
    elif risk_score >= 20:
        priority, sla = "medium", 12
    else:
        priority, sla = "low", 24
    return ReviewTicket(priority=priority, sla_hours=sla, required_approvals=2 if risk_score >= 80 else 1)


def _parse_enum(enum_cls, value, label: str):
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {label}: {value}. Expected one of: {allowed}") from None


class FlagWorkflow:
    def __init__(
        self,
        ledger: ModerationLedger,
        users: UserDirectory,
        listings: ListingDirectory,
        policy: EscalationPolicy | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.ledger = ledger
        self.store = ledger.store
        self.users = users
        self.listings = listings
        self.config = config or ledger.config or settings
        self.policy = policy or EscalationPolicy(self.config.escalation_ladder)
        self.clock = clock or ledger.clock or utcnow

    def _validate_description(self, reason: FlagReason, description: str | None) -> str | None:
        description = (description or "").strip() or None
        if description and len(description) > self.config.max_flag_description_length:
            raise ValidationError(
                f"Description must be {self.config.max_flag_description_length} characters or less"
            )
        if reason == FlagReason.OTHER and not description:
            raise ValidationError("Description is required when reason is OTHER")
        return description

    def submit(
        self,
        reporter_id: int,
        listing_id: str,
        reason: str,
        description: str | None = None,
    ) -> FlagSubmission:
        """File a report against a listing and score it."""
        reporter = self.users.find_user(reporter_id)
        if reporter is None:
            raise NotFoundError("Reporter not found")
        if self.users.is_banned(reporter):
            raise ForbiddenError("Banned users cannot submit flags")

        listing = self.listings.find_listing(listing_id)
        if listing is None:
            raise NotFoundError("Listing not found")
        if listing.user_id == reporter_id:
            raise InvalidOperationError("You cannot flag your own listing")

        flag_reason = _parse_enum(FlagReason, reason, "flag reason")
        description = self._validate_description(flag_reason, description)

        if self.store.find_flag(listing_id, reporter_id) is not None:
            raise DuplicateError("You have already flagged this listing")

        now = self.clock()
        window = timedelta(hours=self.config.flag_rate_limit_window_hours)
        recent = self.store.count_flags_by_reporter_since(reporter_id, now - window)
        if recent >= self.config.flag_rate_limit_count:
            raise RateLimitedError(
                f"Rate limit exceeded: at most {self.config.flag_rate_limit_count} flags per "
                f"{self.config.flag_rate_limit_window_hours} hours"
            )

        analysis = analyze(listing, self.store.list_blocked_words(active_only=True), self.config.scoring)
        effects = self.ledger.new_effects()
        # a failed automatic action takes the flag with it, so a retry starts clean
        with self.store.transaction():
            flag = self.store.add_flag(
                Flag(
                    listing_id=listing_id,
                    reporter_id=reporter_id,
                    reason=flag_reason.value,
                    description=description,
                    status=FlagStatus.PENDING.value,
                    reviewed_by=None,
                    review_notes=None,
                    created_at=now,
                    reviewed_at=None,
                )
            )
            submission = FlagSubmission(flag=flag, analysis=analysis, ticket=review_ticket(analysis.risk_score))
            if analysis.recommended_action.severity == "critical":
                self._apply_automatic_action(submission, listing, effects)
        effects.flush()
        logger.info("Flag %s submitted: listing=%s reporter=%s reason=%s", flag.id, listing_id, reporter_id, flag.reason)

        if submission.automatic_actions:
            submission.warnings.append("Critical content detected; owner banned and listing removed automatically")
            logger.warning(
                "Automatic ban for user=%s after flag %s (risk=%s)",
                listing.user_id,
                flag.id,
                analysis.risk_score,
            )
        elif analysis.has_violations:
            submission.warnings.append(
                f"Listing scored {analysis.risk_score}; queued for {submission.ticket.priority} review"
            )
        return submission

    def _apply_automatic_action(self, submission: FlagSubmission, listing: ListingRecord, effects) -> None:
        analysis = submission.analysis
        summary = "; ".join(v.details for v in analysis.violations) or analysis.recommended_action.reason
        reason = f"Automatic action (risk score {analysis.risk_score}): {summary}"
        reason = reason[: self.config.max_action_reason_length]

        # claim the flag before any projection changes
        resolved = self.store.resolve_flag(
            submission.flag.id,
            FlagStatus.UPHELD.value,
            SYSTEM_ACTOR_ID,
            reason,
            self.clock(),
        )
        if resolved is None:
            raise InvalidStateError("Flag has already been reviewed")
        ban = self.ledger.ban(
            listing.user_id,
            SYSTEM_ACTOR_ID,
            reason,
            self.config.automatic_ban_duration_days,
            effects,
            listing_id=listing.id,
        )
        removal = self.ledger.remove_content(listing.id, listing.user_id, SYSTEM_ACTOR_ID, reason, effects)
        submission.flag = resolved
        submission.automatic_actions = [ban, removal]

    def review(
        self,
        flag_id: int,
        reviewer_id: int,
        decision: str,
        notes: str | None = None,
    ) -> FlagReviewOutcome:
        reviewer = self.users.find_user(reviewer_id)
        if reviewer is None or not reviewer.is_admin:
            raise ForbiddenError("Only admins can review flags")

        status = _parse_enum(FlagStatus, decision, "decision")
        if status == FlagStatus.PENDING:
            raise ValidationError("Decision must be UPHELD or DISMISSED")

        flag = self.store.get_flag(flag_id)
        if flag is None:
            raise NotFoundError("Flag not found")
        if flag.status != FlagStatus.PENDING.value:
            raise InvalidStateError("Flag has already been reviewed")

        effects = self.ledger.new_effects()
        actions: list[ModerationAction] = []
        with self.store.transaction():
            resolved = self.store.resolve_flag(flag_id, status.value, reviewer_id, notes, self.clock())
            if resolved is None:
                raise InvalidStateError("Flag has already been reviewed")
            if status == FlagStatus.UPHELD:
                actions = self._enforce(resolved, reviewer_id, notes, effects)
        effects.flush()
        logger.info("Flag %s %s by admin %s", flag_id, status.value, reviewer_id)
        return FlagReviewOutcome(flag=resolved, actions=actions)

    def _enforce(self, flag: Flag, reviewer_id: int, notes: str | None, effects) -> list[ModerationAction]:
        listing = self.listings.find_listing(flag.listing_id)
        if listing is None:
            logger.warning("Flag %s upheld but listing %s no longer exists", flag.id, flag.listing_id)
            return []

        reason = f"Flag upheld ({flag.reason})"
        if notes:
            reason = f"{reason}: {notes}"
        reason = reason[: self.config.max_action_reason_length]

        step = self.policy.next_action(self.ledger.prior_infraction_count(listing.user_id))
        if step.action_type == ActionType.BAN.value:
            penalty = self.ledger.ban(listing.user_id, reviewer_id, reason, step.duration_days, effects, listing.id)
        else:
            penalty = self.ledger.warn(listing.user_id, reviewer_id, reason, effects, listing.id)
        removal = self.ledger.remove_content(listing.id, listing.user_id, reviewer_id, reason, effects)
        return [penalty, removal]

    def review_many(
        self,
        flag_ids: Iterable[int],
        reviewer_id: int,
        decision: str,
        notes: str | None = None,
    ) -> BulkReviewResult:
        """Review each flag on its own; one failure does not stop the batch."""
        result = BulkReviewResult()
        for flag_id in dict.fromkeys(flag_ids):
            try:
                result.processed.append(self.review(flag_id, reviewer_id, decision, notes))
            except ForbiddenError:
                raise
            except ModerationError as exc:
                result.errors[flag_id] = exc.message
        logger.info(
            "Bulk review by admin %s: processed=%s failed=%s",
            reviewer_id,
            len(result.processed),
            len(result.errors),
        )
        return result

    def pending(self, limit: int = 50) -> list[Flag]:
        return self.store.list_flags(status=FlagStatus.PENDING.value, limit=limit)

    def urgent(self, limit: int = 50) -> list[Flag]:
        """Pending flags older than the urgent age."""
        cutoff = self.clock() - timedelta(hours=self.config.urgent_flag_age_hours)
        return self.store.list_flags(status=FlagStatus.PENDING.value, created_before=cutoff, limit=limit)

    def age_hours(self, flag: Flag) -> float:
        return (self.clock() - as_utc(flag.created_at)).total_seconds() / 3600
