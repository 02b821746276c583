from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Literal
from app.schemas.category import Category
from app.schemas.common import Pagination, UTCDateTime
from app.schemas.user import normalize_email

TopicStatus = Literal["pending", "approved", "rejected", "generated"]


class TopicSubmit(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=1000)
    category_id: int = Field(ge=1)
    email: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)


class TopicStatusUpdate(BaseModel):
    status: TopicStatus


class TopicScheduleRequest(BaseModel):
    scheduled_for: datetime


class Topic(BaseModel):
    id: int
    title: str
    description: str
    category_id: int
    user_id: Optional[int] = None
    email: Optional[str] = None
    status: str
    scheduled_for: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    category: Optional[Category] = None

    class Config:
        from_attributes = True


class TopicResponse(BaseModel):
    success: bool = True
    message: str
    topic: Topic


class TopicList(BaseModel):
    topics: List[Topic]
    pagination: Pagination
