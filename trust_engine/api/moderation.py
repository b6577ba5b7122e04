"""Ledger, blocked words, analysis and dashboard API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status

from trust_engine.api.deps import get_current_user, get_engine, require_admin, to_http
from trust_engine.core.errors import ModerationError
from trust_engine.models.user import User
from trust_engine.schemas.moderation import (
    AnalyzeRequest,
    BlockedWordCreate,
    BlockedWordResponse,
    BlockedWordUpdate,
    ContentAnalysisResponse,
    ModerationStatsResponse,
    SweepResponse,
    UserModerationStatusResponse,
)
from trust_engine.services.collaborators import ListingRecord
from trust_engine.services.engine import ModerationEngine
from trust_engine.services.risk_scorer import analyze

router = APIRouter(tags=["moderation"])


@router.post("/analyze", response_model=ContentAnalysisResponse)
def analyze_content(
    data: AnalyzeRequest,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Score listing content without flagging it or writing anything."""
    draft = ListingRecord(
        id=f"draft-{uuid.uuid4().hex[:12]}",
        user_id=current_user.id,
        title=data.title,
        description=data.description,
        price_usd=data.price_usd,
        category=data.category,
    )
    words = engine.blocked_words.list_words(active_only=True)
    return ContentAnalysisResponse.model_validate(analyze(draft, words, engine.flags.config.scoring))


@router.post("/bans/sweep", response_model=SweepResponse)
def sweep_bans(
    engine: ModerationEngine = Depends(get_engine),
    _admin: User = Depends(require_admin),
):
    """Lift every timed ban that has run out."""
    try:
        lifted = engine.ledger.sweep_expired_bans()
    except ModerationError as e:
        raise to_http(e)
    return SweepResponse(processed=len(lifted), ids=[a.reverses_action_id for a in lifted])


@router.get("/users/{user_id}/moderation-status", response_model=UserModerationStatusResponse)
def moderation_status(
    user_id: int,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Ban state, warnings and restrictions. Users see their own; admins see anyone's."""
    if current_user.id != user_id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this user")
    try:
        return UserModerationStatusResponse.model_validate(engine.ledger.user_status(user_id))
    except ModerationError as e:
        raise to_http(e)


@router.get("/moderation/stats", response_model=ModerationStatsResponse)
def moderation_stats(
    engine: ModerationEngine = Depends(get_engine),
    _admin: User = Depends(require_admin),
):
    """Dashboard counters and success rates."""
    return ModerationStatsResponse.model_validate(engine.stats.compute())


# ---------- Blocked words ----------


@router.get("/blocked-words", response_model=list[BlockedWordResponse])
def list_blocked_words(
    active_only: bool = False,
    engine: ModerationEngine = Depends(get_engine),
    _admin: User = Depends(require_admin),
):
    return engine.blocked_words.list_words(active_only=active_only)


@router.post("/blocked-words", response_model=BlockedWordResponse, status_code=201)
def add_blocked_word(
    data: BlockedWordCreate,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    try:
        return engine.blocked_words.add(data.word, data.severity, current_user.id)
    except ModerationError as e:
        raise to_http(e)


@router.post("/blocked-words/{word_id}/toggle", response_model=BlockedWordResponse)
def toggle_blocked_word(
    word_id: int,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    """Activate or deactivate a word without deleting it."""
    try:
        return engine.blocked_words.toggle(word_id, current_user.id)
    except ModerationError as e:
        raise to_http(e)


@router.patch("/blocked-words/{word_id}", response_model=BlockedWordResponse)
def update_blocked_word(
    word_id: int,
    data: BlockedWordUpdate,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    try:
        return engine.blocked_words.set_severity(word_id, data.severity, current_user.id)
    except ModerationError as e:
        raise to_http(e)


@router.delete("/blocked-words/{word_id}", status_code=204)
def delete_blocked_word(
    word_id: int,
    engine: ModerationEngine = Depends(get_engine),
    current_user: User = Depends(get_current_user),
):
    try:
        engine.blocked_words.remove(word_id, current_user.id)
    except ModerationError as e:
        raise to_http(e)
    return Response(status_code=204)
