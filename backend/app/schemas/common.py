from pydantic import BaseModel, PlainSerializer
from datetime import datetime, timezone
from typing import Annotated


def serialize_utc(value: datetime) -> str:
    """ISO 8601 in UTC with a Z suffix; naive values are stored UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


# Response timestamps: read as stored, written with an explicit UTC offset
UTCDateTime = Annotated[
    datetime, PlainSerializer(serialize_utc, return_type=str, when_used="json")
]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class Message(BaseModel):
    message: str
