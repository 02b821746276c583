from pydantic import BaseModel, Field, field_validator
from app.schemas.common import UTCDateTime
from typing import Optional
import re

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Trim and lowercase an email address, rejecting obviously invalid ones."""
    if value is None:
        return value
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: str
    password: str = Field(min_length=6, max_length=128)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters long")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)


class AdminUserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = None
    is_admin: Optional[bool] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v)


class UserPublic(BaseModel):
    """User fields that are safe to embed in posts and schedules."""

    id: int
    username: str

    class Config:
        from_attributes = True


class User(BaseModel):
    id: int
    username: str
    email: str
    is_admin: bool
    is_active: bool = True
    created_at: UTCDateTime

    class Config:
        from_attributes = True
