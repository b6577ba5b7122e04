"""Ledger, blocked-word, analysis and dashboard schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from trust_engine.services.risk_scorer import RecommendedAction


class ModerationActionResponse(BaseModel):
    id: int
    target_user_id: int
    target_listing_id: str | None
    admin_id: int
    action_type: str
    reason: str
    duration_days: int | None
    expires_at: datetime | None
    reverses_action_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ViolationResponse(BaseModel):
    type: str
    severity: str
    details: str
    confidence: float
    score: int

    model_config = {"from_attributes": True}


class DecisionResponse(BaseModel):
    action: RecommendedAction
    severity: str
    automatic: bool
    reason: str

    model_config = {"from_attributes": True}


class ContentAnalysisResponse(BaseModel):
    violations: list[ViolationResponse]
    recommended_action: DecisionResponse
    risk_score: int

    model_config = {"from_attributes": True}


class AnalyzeRequest(BaseModel):
    """Dry-run scoring input; nothing is written."""

    title: str = Field(default="", max_length=255)
    description: str = ""
    price_usd: float | None = Field(default=None, ge=0)
    category: str | None = None


class BlockedWordCreate(BaseModel):
    word: str = Field(..., min_length=1, max_length=100)
    severity: str = Field(default="WARNING", pattern="^(WARNING|BLOCK|warning|block)$")


class BlockedWordUpdate(BaseModel):
    severity: str = Field(..., pattern="^(WARNING|BLOCK|warning|block)$")


class BlockedWordResponse(BaseModel):
    id: int
    word: str
    severity: str
    added_by: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserModerationStatusResponse(BaseModel):
    user_id: int
    is_banned: bool
    ban_expires_at: datetime | None
    permanent_ban: bool
    warning_count: int
    infraction_count: int
    pending_appeals: int
    can_create_listings: bool
    can_submit_flags: bool
    restrictions: list[str]
    recent_actions: list[ModerationActionResponse]

    model_config = {"from_attributes": True}


class ReviewStatsResponse(BaseModel):
    total: int
    pending: int
    accepted: int
    rejected: int
    success_rate: float | None
    avg_review_hours: float | None

    model_config = {"from_attributes": True}


class ModerationStatsResponse(BaseModel):
    flags: ReviewStatsResponse
    appeals: ReviewStatsResponse
    urgent_flags: int
    urgent_appeals: int
    expired_appeals: int
    flags_this_week: int
    flags_last_week: int
    weekly_change_percent: float | None
    flags_by_reason: dict[str, int]
    actions_last_24h: dict[str, int]

    model_config = {"from_attributes": True}


class SweepResponse(BaseModel):
    processed: int
    ids: list[int]
