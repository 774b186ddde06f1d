from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from core.settings import settings


class CommentAuthorSchema(BaseModel):
    uuid: UUID
    name: str

    model_config = {"from_attributes": True}


class CommentContentSchema(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def content_length(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > settings.MAX_COMMENT_LENGTH:
            raise ValueError(f"Comment must be between 1 and {settings.MAX_COMMENT_LENGTH} characters")
        return v


class CreateCommentRequestSchema(CommentContentSchema):
    parent_uuid: Optional[UUID] = None


class UpdateCommentRequestSchema(CommentContentSchema):
    pass


class CommentSchema(BaseModel):
    uuid: UUID
    poll_uuid: UUID
    parent_uuid: Optional[UUID] = None
    content: str
    is_visible: bool
    report_count: int
    created_at: datetime
    updated_at: datetime
    author: CommentAuthorSchema


class CommentThreadSchema(CommentSchema):
    replies: List["CommentThreadSchema"] = Field(default_factory=list)


class CommentVisibilityRequestSchema(BaseModel):
    is_visible: bool


class ReportCommentRequestSchema(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A reason is required")
        return v


class ReactionRequestSchema(BaseModel):
    reaction_type: Literal["like", "dislike"]


class ReactionResponseSchema(BaseModel):
    comment_uuid: UUID
    reaction_type: Optional[str]
    likes: int
    dislikes: int


class CommentStatsSchema(BaseModel):
    total_comments: int
    comments_today: int
    comments_this_week: int
