"""Flag schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from trust_engine.schemas.moderation import ContentAnalysisResponse, ModerationActionResponse


class FlagCreate(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    reason: str = Field(..., description="SPAM | INAPPROPRIATE | FAKE | OTHER")
    description: str | None = Field(default=None, description="Required when reason is OTHER")


class FlagReviewRequest(BaseModel):
    decision: str = Field(..., pattern="^(UPHELD|DISMISSED|upheld|dismissed)$")
    notes: str | None = None


class FlagBulkReviewRequest(FlagReviewRequest):
    flag_ids: list[int] = Field(..., min_length=1, max_length=100)


class FlagResponse(BaseModel):
    id: int
    listing_id: str
    reporter_id: int
    reason: str
    description: str | None
    status: str
    reviewed_by: int | None
    review_notes: str | None
    created_at: datetime
    reviewed_at: datetime | None

    model_config = {"from_attributes": True}


class PendingFlagResponse(FlagResponse):
    age_hours: float
    urgent: bool


class ReviewTicketResponse(BaseModel):
    priority: str
    sla_hours: int
    required_approvals: int

    model_config = {"from_attributes": True}


class FlagSubmissionResponse(BaseModel):
    flag: FlagResponse
    analysis: ContentAnalysisResponse
    ticket: ReviewTicketResponse
    automatic_actions: list[ModerationActionResponse]
    warnings: list[str]

    model_config = {"from_attributes": True}


class FlagReviewResponse(BaseModel):
    flag: FlagResponse
    actions: list[ModerationActionResponse]

    model_config = {"from_attributes": True}


class FlagBulkReviewResponse(BaseModel):
    processed: list[FlagReviewResponse]
    errors: dict[int, str]

    model_config = {"from_attributes": True}
