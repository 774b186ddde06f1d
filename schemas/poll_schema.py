from datetime import datetime
from typing import List, Optional, Dict
from uuid import UUID
from pydantic import AliasChoices, BaseModel, Field, field_validator

from core.settings import settings


class PollOptionSchema(BaseModel):
    uuid: UUID
    text: str
    order_index: int

    model_config = {"from_attributes": True}


class PollWriteSchema(BaseModel):
    title: str = Field(..., max_length=300)
    description: Optional[str] = Field(None, max_length=2000)
    is_public: bool = True
    allow_multiple_votes: bool = False
    allow_anonymous_votes: bool = False
    expires_at: Optional[datetime] = None
    options: List[str]

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Poll title is required")
        return v

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("options")
    @classmethod
    def normalize_options(cls, v: List[str]) -> List[str]:
        options = [opt.strip() for opt in v if opt and opt.strip()]
        if len(options) < 2:
            raise ValueError("At least 2 options are required")
        if len(options) > settings.MAX_POLL_OPTIONS:
            raise ValueError(f"A poll can have at most {settings.MAX_POLL_OPTIONS} options")
        if any(len(opt) > 200 for opt in options):
            raise ValueError("Options must be at most 200 characters")
        return options


class CreatePollRequestSchema(PollWriteSchema):
    pass


class UpdatePollRequestSchema(PollWriteSchema):
    """Full replacement: every field and the whole option list."""


class OptionResultSchema(BaseModel):
    option_uuid: UUID
    option_text: str
    vote_count: int
    percentage: float


class PollResultsSchema(BaseModel):
    poll_uuid: UUID
    total_votes: int
    results: List[OptionResultSchema]


class PollResponseSchema(BaseModel):
    uuid: UUID
    title: str
    description: Optional[str]
    is_public: bool
    allow_multiple_votes: bool
    allow_anonymous_votes: bool
    expires_at: Optional[datetime]
    is_expired: bool = False
    created_at: datetime
    updated_at: datetime
    created_by_uuid: Optional[UUID] = None
    options: List[PollOptionSchema]


class PollDetailResponseSchema(PollResponseSchema):
    total_votes: int
    results: List[OptionResultSchema]


class PollListItemSchema(BaseModel):
    uuid: UUID
    title: str
    description: Optional[str]
    is_public: bool
    expires_at: Optional[datetime]
    created_at: datetime
    options: List[PollOptionSchema] = Field(validation_alias=AliasChoices("options", "poll_options"))

    model_config = {"from_attributes": True}


class PollStatsSchema(BaseModel):
    poll_uuid: UUID
    title: str
    option_count: int
    total_votes: int
    unique_voters: int
    is_expired: bool


class SocialPreviewSchema(BaseModel):
    title: str
    description: str
    url: str
    image_url: str
    site_name: str
    open_graph: Dict[str, str]
    twitter: Dict[str, str]


class VoteRequestSchema(BaseModel):
    option_uuid: UUID = Field(..., description="UUID of the option to vote for")


class VoteResponseSchema(BaseModel):
    message: str
    poll_uuid: UUID
    option_uuid: UUID
    vote_uuid: UUID
    summary: PollResultsSchema


class MyVotesResponseSchema(BaseModel):
    poll_uuid: UUID
    option_uuids: List[UUID]
