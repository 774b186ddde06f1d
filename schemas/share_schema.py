from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, field_validator

from core.base import is_past
from schemas.poll_schema import PollResponseSchema


class CreateShareRequestSchema(BaseModel):
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def expiry_in_future(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and is_past(v):
            raise ValueError("Share expiry must be in the future")
        return v


class ShareResponseSchema(BaseModel):
    share_code: str
    share_url: str
    poll_uuid: UUID
    expires_at: Optional[datetime]
    created_at: datetime


class SharedPollResponseSchema(BaseModel):
    share_code: str
    poll: PollResponseSchema


class ShareValidationSchema(BaseModel):
    is_valid: bool
    poll_uuid: Optional[UUID] = None


class ShareStatsSchema(BaseModel):
    share_count: int
    last_shared: Optional[datetime]
