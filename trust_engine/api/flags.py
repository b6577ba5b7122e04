"""Flag API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from trust_engine.api.deps import get_current_user, get_engine, require_admin, to_http
from trust_engine.core.errors import ModerationError
from trust_engine.models.user import User
from trust_engine.schemas.flag import (
    FlagBulkReviewRequest,
    FlagBulkReviewResponse,
    FlagCreate,
    FlagResponse,
    FlagReviewRequest,
    FlagReviewResponse,
    FlagSubmissionResponse,
    PendingFlagResponse,
)
from trust_engine.services.engine import ModerationEngine

router = APIRouter(prefix="/flags", tags=["flags"])


@router.post("", response_model=FlagSubmissionResponse, status_code=201)
def submit_flag(
    data: FlagCreate,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Report a listing. Critical content is actioned immediately."""
    try:
        result = engine.flags.submit(current_user.id, data.listing_id, data.reason, data.description)
    except ModerationError as e:
        raise to_http(e)
    return FlagSubmissionResponse.model_validate(result)


@router.get("/pending", response_model=list[PendingFlagResponse])
def list_pending(
    limit: int = Query(default=50, ge=1, le=200),
    urgent_only: bool = False,
    engine: ModerationEngine = Depends(get_engine),
    _admin: User = Depends(require_admin),
):
    """Review queue, oldest first."""
    flags = engine.flags.urgent(limit) if urgent_only else engine.flags.pending(limit)
    urgent_after = engine.flags.config.urgent_flag_age_hours
    out = []
    for flag in flags:
        age = engine.flags.age_hours(flag)
        out.append(
            PendingFlagResponse.model_validate(
                {**FlagResponse.model_validate(flag).model_dump(), "age_hours": round(age, 1), "urgent": age > urgent_after}
            )
        )
    return out


@router.post("/bulk-review", response_model=FlagBulkReviewResponse)
def bulk_review(
    data: FlagBulkReviewRequest,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Review many flags with one decision; per-flag failures are reported, not raised."""
    try:
        result = engine.flags.review_many(data.flag_ids, current_user.id, data.decision, data.notes)
    except ModerationError as e:
        raise to_http(e)
    return FlagBulkReviewResponse.model_validate(result)


@router.post("/{flag_id}/review", response_model=FlagReviewResponse)
def review_flag(
    flag_id: int,
    data: FlagReviewRequest,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Uphold or dismiss a pending flag."""
    try:
        result = engine.flags.review(flag_id, current_user.id, data.decision, data.notes)
    except ModerationError as e:
        raise to_http(e)
    return FlagReviewResponse.model_validate(result)
