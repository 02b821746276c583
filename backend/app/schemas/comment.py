from pydantic import BaseModel, Field, field_validator
from app.schemas.common import UTCDateTime
from typing import Optional, List
from app.schemas.user import normalize_email


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    author_name: str = Field(min_length=1, max_length=100)
    author_email: str
    parent_id: Optional[int] = Field(None, ge=1)

    @field_validator("content", "author_name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("author_email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class Comment(BaseModel):
    id: int
    post_id: int
    parent_id: Optional[int] = None
    user_id: Optional[int] = None
    content: str
    author_name: str
    author_email: str
    is_approved: bool
    created_at: UTCDateTime

    class Config:
        from_attributes = True


class CommentWithReplies(Comment):
    replies: List[Comment] = []


class CommentPostRef(BaseModel):
    id: int
    title: str
    slug: str

    class Config:
        from_attributes = True


class PendingComment(Comment):
    post: Optional[CommentPostRef] = None
