"""Escalation ladder: how hard to hit a repeat offender."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from trust_engine.models.moderation_action import ActionType

_ACTION_RANK = {ActionType.WARNING.value: 1, ActionType.BAN.value: 2}


@dataclass(frozen=True)
class EscalationStep:
    action_type: str
    duration_days: int | None = None  # None on a BAN means permanent

    @property
    def severity(self) -> tuple[int, float]:
        """Sortable severity. Permanent bans outrank any timed ban."""
        rank = _ACTION_RANK[self.action_type]
        if self.action_type != ActionType.BAN.value:
            return (rank, 0)
        return (rank, float("inf") if self.duration_days is None else self.duration_days)


class EscalationPolicy:
    """Maps a user's prior infraction count to the next action.

    The ladder is ``{min_count: (action_type, duration_days)}``; the entry
    with the highest ``min_count`` not above the count applies, so the last
    rung is the ceiling.
    """

    def __init__(self, ladder: Mapping[int, tuple[str, int | None]]) -> None:
        if 0 not in ladder:
            raise ValueError("Escalation ladder must define a step for 0 prior actions")

        steps: list[tuple[int, EscalationStep]] = []
        for min_count, (action_type, duration) in sorted(ladder.items()):
            if min_count < 0:
                raise ValueError("Escalation thresholds must be non-negative")
            action = str(action_type).upper()
            if action not in _ACTION_RANK:
                raise ValueError(f"Unsupported escalation action: {action_type}")
            if action == ActionType.WARNING.value and duration is not None:
                raise ValueError("Warnings cannot carry a duration")
            if duration is not None and duration <= 0:
                raise ValueError("Ban duration must be positive")
            steps.append((min_count, EscalationStep(action, duration)))

        for (_, lower), (_, higher) in zip(steps, steps[1:]):
            if higher.severity < lower.severity:
                raise ValueError("Escalation ladder must not decrease in severity")

        self._steps = steps

    @property
    def ceiling(self) -> EscalationStep:
        return self._steps[-1][1]

    def next_action(self, prior_action_count: int) -> EscalationStep:
        count = max(0, prior_action_count)
        chosen = self._steps[0][1]
        for min_count, step in self._steps:
            if min_count > count:
                break
            chosen = step
        return chosen
