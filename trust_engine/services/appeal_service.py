"""Appeal workflow: contest a ledger entry, review it before the deadline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from trust_engine.core.clock import as_utc, utcnow
from trust_engine.core.config import Settings, settings
from trust_engine.core.errors import (
    DeadlineExpiredError,
    DuplicateError,
    ForbiddenError,
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from trust_engine.models import ActionType, Appeal, AppealStatus, ModerationAction
from trust_engine.services.collaborators import UserDirectory
from trust_engine.services.ledger import ModerationLedger

logger = logging.getLogger(__name__)

SWEEP_RESPONSE = "Appeal automatically denied: review deadline passed"


@dataclass
class AppealReviewOutcome:
    appeal: Appeal
    unban: ModerationAction | None = None


class AppealWorkflow:
    def __init__(
        self,
        ledger: ModerationLedger,
        users: UserDirectory,
        config: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.ledger = ledger
        self.store = ledger.store
        self.users = users
        self.config = config or ledger.config or settings
        self.clock = clock or ledger.clock or utcnow

    @property
    def window(self) -> timedelta:
        return timedelta(days=self.config.appeal_deadline_days)

    def deadline(self, appeal: Appeal) -> datetime:
        return as_utc(appeal.created_at) + self.window

    def is_expired(self, appeal: Appeal, now: datetime | None = None) -> bool:
        return (now or self.clock()) > self.deadline(appeal)

    def submit(self, user_id: int, moderation_action_id: int, message: str) -> Appeal:
        message = (message or "").strip()
        if not message:
            raise ValidationError("Appeal message is required")
        if len(message) > self.config.max_appeal_message_length:
            raise ValidationError(
                f"Appeal message must be {self.config.max_appeal_message_length} characters or less"
            )

        action = self.store.get_action(moderation_action_id)
        if action is None:
            raise NotFoundError("Moderation action not found")
        if action.target_user_id != user_id:
            raise ForbiddenError("You can only appeal actions taken against you")
        if action.action_type == ActionType.UNBAN.value:
            raise InvalidOperationError("Unban entries cannot be appealed")
        if self.store.find_appeal(moderation_action_id, user_id) is not None:
            raise DuplicateError("You have already appealed this action")

        with self.store.transaction():
            appeal = self.store.add_appeal(
                Appeal(
                    user_id=user_id,
                    moderation_action_id=moderation_action_id,
                    message=message,
                    status=AppealStatus.PENDING.value,
                    admin_response=None,
                    reviewed_by=None,
                    reviewed_at=None,
                    created_at=self.clock(),
                )
            )
        logger.info("Appeal %s submitted: user=%s action=%s", appeal.id, user_id, moderation_action_id)
        return appeal

    def review(
        self,
        appeal_id: int,
        reviewer_id: int,
        decision: str,
        response: str | None = None,
    ) -> AppealReviewOutcome:
        reviewer = self.users.find_user(reviewer_id)
        if reviewer is None or not reviewer.is_admin:
            raise ForbiddenError("Only admins can review appeals")

        try:
            status = AppealStatus(str(decision).upper())
        except ValueError:
            raise ValidationError("Decision must be APPROVED or DENIED") from None
        if status == AppealStatus.PENDING:
            raise ValidationError("Decision must be APPROVED or DENIED")

        response = (response or "").strip() or None
        if response and len(response) > self.config.max_admin_response_length:
            raise ValidationError(
                f"Response must be {self.config.max_admin_response_length} characters or less"
            )

        appeal = self.store.get_appeal(appeal_id)
        if appeal is None:
            raise NotFoundError("Appeal not found")
        if appeal.status != AppealStatus.PENDING.value:
            raise InvalidStateError("Appeal has already been reviewed")

        now = self.clock()
        if self.is_expired(appeal, now):
            raise DeadlineExpiredError(
                f"Appeal deadline passed on {self.deadline(appeal).isoformat()}; it can no longer be reviewed"
            )

        effects = self.ledger.new_effects()
        unban = None
        with self.store.transaction():
            resolved = self.store.resolve_appeal(appeal_id, status.value, reviewer_id, response, now)
            if resolved is None:
                raise InvalidStateError("Appeal has already been reviewed")
            if status == AppealStatus.APPROVED:
                unban = self._reverse(resolved, reviewer_id, effects)
            effects.notify(
                resolved.user_id,
                f"appeal.{status.value.lower()}",
                {"appeal_id": resolved.id, "moderation_action_id": resolved.moderation_action_id, "response": response},
            )
        effects.flush()
        logger.info("Appeal %s %s by admin %s", appeal_id, status.value, reviewer_id)
        return AppealReviewOutcome(appeal=resolved, unban=unban)

    def _reverse(self, appeal: Appeal, reviewer_id: int, effects) -> ModerationAction | None:
        """Lift the appealed ban, if it is a ban that is still in force."""
        action = self.store.get_action(appeal.moderation_action_id)
        if action is None or action.action_type != ActionType.BAN.value:
            return None
        if self.store.find_reversal(action.id) is not None:
            logger.info("Ban %s already reversed before appeal %s was approved", action.id, appeal.id)
            return None
        return self.ledger.unban(action, reviewer_id, f"Appeal {appeal.id} approved", effects)

    def sweep_expired(self) -> list[Appeal]:
        """Deny every pending appeal past its deadline. Safe to run repeatedly."""
        now = self.clock()
        denied: list[Appeal] = []
        for appeal in self.store.list_appeals(status=AppealStatus.PENDING.value, created_before=now - self.window):
            effects = self.ledger.new_effects()
            with self.store.transaction():
                resolved = self.store.resolve_appeal(appeal.id, AppealStatus.DENIED.value, None, SWEEP_RESPONSE, now)
                if resolved is not None:
                    effects.notify(
                        resolved.user_id,
                        "appeal.denied",
                        {"appeal_id": resolved.id, "moderation_action_id": resolved.moderation_action_id, "response": SWEEP_RESPONSE},
                    )
            if resolved is not None:
                denied.append(resolved)
                effects.flush()
        logger.info("Appeal sweep finished: denied=%s", len(denied))
        return denied

    def pending(self, limit: int = 50) -> list[Appeal]:
        return self.store.list_appeals(status=AppealStatus.PENDING.value, limit=limit)

    def urgent(self, limit: int = 50) -> list[Appeal]:
        """Pending appeals close to (but not past) their deadline."""
        now = self.clock()
        margin = timedelta(days=self.config.appeal_urgent_days_before_deadline)
        near = self.store.list_appeals(
            status=AppealStatus.PENDING.value,
            created_before=now - self.window + margin,
        )
        return [a for a in near if not self.is_expired(a, now)][:limit]
