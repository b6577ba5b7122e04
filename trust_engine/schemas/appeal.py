"""Appeal schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from trust_engine.schemas.moderation import ModerationActionResponse


class AppealCreate(BaseModel):
    moderation_action_id: int
    message: str = Field(..., description="Why the action should be reversed")


class AppealReviewRequest(BaseModel):
    decision: str = Field(..., pattern="^(APPROVED|DENIED|approved|denied)$")
    response: str | None = None


class AppealResponse(BaseModel):
    id: int
    user_id: int
    moderation_action_id: int
    message: str
    status: str
    admin_response: str | None
    reviewed_by: int | None
    reviewed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AppealReviewResponse(BaseModel):
    appeal: AppealResponse
    unban: ModerationActionResponse | None

    model_config = {"from_attributes": True}
