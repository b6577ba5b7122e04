"""Appeal API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from trust_engine.api.deps import get_current_user, get_engine, require_admin, to_http
from trust_engine.core.errors import ModerationError
from trust_engine.models.user import User
from trust_engine.schemas.appeal import AppealCreate, AppealResponse, AppealReviewRequest, AppealReviewResponse
from trust_engine.schemas.moderation import SweepResponse
from trust_engine.services.engine import ModerationEngine

router = APIRouter(prefix="/appeals", tags=["appeals"])


@router.post("", response_model=AppealResponse, status_code=201)
def submit_appeal(
    data: AppealCreate,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Contest a moderation action taken against the current user."""
    try:
        return engine.appeals.submit(current_user.id, data.moderation_action_id, data.message)
    except ModerationError as e:
        raise to_http(e)


@router.get("/pending", response_model=list[AppealResponse])
def list_pending(
    limit: int = Query(default=50, ge=1, le=200),
    urgent_only: bool = False,
    engine: ModerationEngine = Depends(get_engine),
    _admin: User = Depends(require_admin),
):
    """Pending appeals, oldest first. ``urgent_only`` keeps those near the deadline."""
    if urgent_only:
        return engine.appeals.urgent(limit)
    return engine.appeals.pending(limit)


@router.post("/sweep", response_model=SweepResponse)
def sweep_appeals(
    engine: ModerationEngine = Depends(get_engine),
    _admin: User = Depends(require_admin),
):
    """Deny every pending appeal past its deadline."""
    try:
        denied = engine.appeals.sweep_expired()
    except ModerationError as e:
        raise to_http(e)
    return SweepResponse(processed=len(denied), ids=[a.id for a in denied])


@router.post("/{appeal_id}/review", response_model=AppealReviewResponse)
def review_appeal(
    appeal_id: int,
    data: AppealReviewRequest,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Approve or deny an appeal. Approving an appeal over a ban lifts it."""
    try:
        result = engine.appeals.review(appeal_id, current_user.id, data.decision, data.response)
    except ModerationError as e:
        raise to_http(e)
    return AppealReviewResponse.model_validate(result)
