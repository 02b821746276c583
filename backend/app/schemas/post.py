from pydantic import BaseModel, Field
from typing import Optional, List
from app.schemas.category import Category
from app.schemas.comment import CommentWithReplies
from app.schemas.common import Pagination, UTCDateTime
from app.schemas.user import UserPublic


class PostBase(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    excerpt: str = Field(min_length=1, max_length=500)
    content: str = Field(min_length=1)
    cover_image: str = Field(min_length=1)
    category_id: int = Field(ge=1)
    tags: List[str] = []
    reading_time: int = Field(5, ge=1)
    is_generated: bool = False
    related_assets: List[str] = []


class PostCreate(PostBase):
    # Derived from the title when omitted
    slug: Optional[str] = Field(None, max_length=200)


class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    slug: Optional[str] = Field(None, min_length=1, max_length=200)
    excerpt: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    cover_image: Optional[str] = None
    category_id: Optional[int] = Field(None, ge=1)
    tags: Optional[List[str]] = None
    reading_time: Optional[int] = Field(None, ge=1)
    is_generated: Optional[bool] = None
    related_assets: Optional[List[str]] = None


class Post(PostBase):
    id: int
    slug: str
    author_id: int
    published_at: UTCDateTime
    created_at: UTCDateTime
    updated_at: UTCDateTime

    author: Optional[UserPublic] = None
    category: Optional[Category] = None

    class Config:
        from_attributes = True


class PostSummary(BaseModel):
    id: int
    title: str
    slug: str

    class Config:
        from_attributes = True


class PostWithComments(Post):
    comments: List[CommentWithReplies] = []


class PostList(BaseModel):
    posts: List[Post]
    pagination: Pagination
