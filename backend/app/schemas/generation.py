from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Literal
from app.schemas.category import Category
from app.schemas.common import Pagination, UTCDateTime
from app.schemas.post import PostSummary
from app.schemas.topic import Topic
from app.schemas.user import UserPublic


class ScheduleCreate(BaseModel):
    """Admin request to generate a post at a future time.

    Accepts the camelCase keys used by the admin dashboard as well as the
    snake_case field names.
    """

    topic_id: Optional[int] = Field(None, alias="topicId", ge=1)
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: int = Field(alias="categoryId", ge=1)
    scheduled_for: datetime = Field(alias="scheduledFor")
    related_assets: List[str] = Field(default_factory=list, alias="relatedAssets")

    class Config:
        populate_by_name = True


class Schedule(BaseModel):
    id: int
    topic_id: Optional[int] = None
    title: str
    description: str
    category_id: int
    author_id: Optional[int] = None
    related_assets: List[str] = []
    scheduled_for: UTCDateTime
    status: str
    generated_post_id: Optional[int] = None
    error_message: Optional[str] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    class Config:
        from_attributes = True


class ScheduleDetail(Schedule):
    topic: Optional[Topic] = None
    category: Optional[Category] = None
    author: Optional[UserPublic] = None
    generated_post: Optional[PostSummary] = None


class ScheduleResponse(BaseModel):
    success: bool = True
    message: str
    schedule: Schedule


class ScheduleList(BaseModel):
    schedules: List[ScheduleDetail]
    pagination: Pagination


class ScheduleResult(BaseModel):
    schedule: int
    status: Literal["success", "failed"]
    post: Optional[int] = None
    title: Optional[str] = None
    error: Optional[str] = None


class CronRunSummary(BaseModel):
    message: str
    processed: int
    success: int
    failure: int
    results: List[ScheduleResult] = []
