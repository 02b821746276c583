from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, joinedload
from typing import Optional
from app.core.database import get_db
from app.core.auth import get_current_admin, get_current_user_optional
from app.core.rate_limit import limiter
from app.api.validation import paginate, to_naive_utc, utcnow, PageParam, LimitParam
from app.models.category import Category
from app.models.generation_schedule import GenerationSchedule
from app.models.topic import Topic, TOPIC_STATUSES
from app.models.user import User
from app.schemas.topic import (
    TopicSubmit,
    TopicStatusUpdate,
    TopicScheduleRequest,
    TopicResponse,
    TopicList,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_topic_or_404(db: Session, topic_id: int) -> Topic:
    topic = (
        db.query(Topic)
        .options(joinedload(Topic.category))
        .filter(Topic.id == topic_id)
        .first()
    )
    if not topic:
        raise HTTPException(status_code=404, detail="Topic not found")
    return topic


@router.post("/submit", response_model=TopicResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def submit_topic(
    request: Request,
    topic_in: TopicSubmit,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """Suggest a topic for a future post. Guests must leave an email."""
    category = db.query(Category).filter(Category.id == topic_in.category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    email = topic_in.email or (current_user.email if current_user else None)
    if not email:
        raise HTTPException(
            status_code=400, detail="Email is required for guest submissions"
        )

    topic = Topic(
        title=topic_in.title.strip(),
        description=topic_in.description.strip(),
        category_id=category.id,
        user_id=current_user.id if current_user else None,
        email=email,
        status="pending",
    )
    db.add(topic)
    db.commit()
    logger.info(f"Topic submitted: {topic.id}")

    return {
        "success": True,
        "message": "Topic submitted successfully",
        "topic": _get_topic_or_404(db, topic.id),
    }


@router.get("", response_model=TopicList)
def get_topics(
    page: int = PageParam,
    limit: int = LimitParam,
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Paginated topic submissions, newest first. Unknown statuses are ignored."""
    query = db.query(Topic).options(joinedload(Topic.category))
    if status_filter in TOPIC_STATUSES:
        query = query.filter(Topic.status == status_filter)
    query = query.order_by(Topic.created_at.desc(), Topic.id.desc())

    topics, pagination = paginate(query, page, limit)
    return {"topics": topics, "pagination": pagination}


@router.post("/{topic_id}/schedule", response_model=TopicResponse)
def schedule_topic(
    topic_id: int,
    schedule_in: TopicScheduleRequest,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Approve a topic and record when it should be written."""
    topic = _get_topic_or_404(db, topic_id)

    scheduled_for = to_naive_utc(schedule_in.scheduled_for)
    if scheduled_for <= utcnow():
        raise HTTPException(
            status_code=400, detail="Scheduled date must be in the future"
        )

    topic.status = "approved"
    topic.scheduled_for = scheduled_for
    db.commit()
    db.refresh(topic)

    return {"success": True, "message": "Topic scheduled successfully", "topic": topic}


@router.patch("/{topic_id}/status", response_model=TopicResponse)
def update_topic_status(
    topic_id: int,
    status_update: TopicStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    topic = _get_topic_or_404(db, topic_id)

    topic.status = status_update.status
    db.commit()
    db.refresh(topic)

    return {"success": True, "message": "Topic status updated", "topic": topic}


@router.delete("/{topic_id}")
def delete_topic(
    topic_id: int,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    topic = db.query(Topic).filter(Topic.id == topic_id).first()
    if not topic:
        raise HTTPException(status_code=404, detail="Topic not found")

    db.query(GenerationSchedule).filter(GenerationSchedule.topic_id == topic.id).update(
        {GenerationSchedule.topic_id: None}, synchronize_session=False
    )
    db.delete(topic)
    db.commit()

    return {"success": True, "message": "Topic deleted successfully"}
