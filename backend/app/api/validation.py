"""
Shared validation and pagination utilities for API endpoints.
"""

import math
from datetime import datetime, timezone
from typing import Optional
from fastapi import Query, HTTPException
from sqlalchemy.orm import Query as SAQuery
from app.schemas.common import Pagination


def to_naive_utc(value: datetime) -> datetime:
    """
    Normalize a datetime for storage.

    Timestamps are stored as naive UTC. Aware values are converted; naive
    values are assumed to already be UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def utcnow() -> datetime:
    """Current time as naive UTC, comparable with stored timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def validate_string_length(
    value: Optional[str],
    param_name: str = "parameter",
    max_length: int = 255,
    min_length: int = 0,
) -> Optional[str]:
    """
    Validate string parameter length.

    Raises:
        HTTPException: If validation fails
    """
    if value is not None:
        if len(value) < min_length:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid {param_name}: minimum length is {min_length}",
            )
        if len(value) > max_length:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid {param_name}: maximum length is {max_length}",
            )
    return value


def paginate(query: SAQuery, page: int, limit: int):
    """
    Apply page/limit to a query.

    Returns:
        Tuple of (items, Pagination)
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if limit else 0,
    )
    return items, pagination


# Query parameter dependencies for common validations
PageParam = Query(1, ge=1, le=100000, description="Page number (1-based)")
LimitParam = Query(10, ge=1, le=100, description="Maximum items per page")
CategoryIdParam = Query(None, ge=1, le=2147483647, description="Category ID filter")
