from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session, joinedload
from typing import Optional
from app.core.database import get_db
from app.core.auth import get_current_admin
from app.core.logging_config import log_admin_action
from app.api.validation import paginate, to_naive_utc, utcnow, PageParam, LimitParam
from app.models.category import Category
from app.models.generation_schedule import (
    GenerationSchedule,
    SCHEDULE_PENDING,
    SCHEDULE_STATUSES,
)
from app.models.topic import Topic
from app.models.user import User
from app.schemas.generation import ScheduleCreate, ScheduleResponse, ScheduleList
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/schedule", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED
)
def schedule_generation(
    schedule_in: ScheduleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """
    Schedule a post to be generated at a future time.

    When a topic is given it is marked approved and its title and description
    are used unless overridden in the request.
    """
    category = db.query(Category).filter(Category.id == schedule_in.category_id).first()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    # Naive datetimes are taken as UTC
    scheduled_for = to_naive_utc(schedule_in.scheduled_for)
    if scheduled_for <= utcnow():
        raise HTTPException(
            status_code=400, detail="Scheduled date must be in the future"
        )

    topic = None
    if schedule_in.topic_id is not None:
        topic = db.query(Topic).filter(Topic.id == schedule_in.topic_id).first()
        if not topic:
            raise HTTPException(status_code=404, detail="Topic not found")
        topic.status = "approved"
        topic.scheduled_for = scheduled_for

    title = schedule_in.title or (topic.title if topic else None) or "Untitled"
    description = schedule_in.description or (topic.description if topic else None) or ""

    schedule = GenerationSchedule(
        topic_id=topic.id if topic else None,
        title=title,
        description=description,
        category_id=category.id,
        author_id=current_admin.id,
        related_assets=schedule_in.related_assets,
        scheduled_for=scheduled_for,
        status=SCHEDULE_PENDING,
        generated_post_id=None,
        error_message=None,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)

    log_admin_action(
        request,
        current_admin,
        "generation.schedule.created",
        f"Generation scheduled for {scheduled_for.isoformat()}",
        schedule_id=schedule.id,
        topic_id=schedule.topic_id,
    )

    return {
        "success": True,
        "message": "Post generation scheduled successfully",
        "schedule": schedule,
    }


@router.get("/schedule", response_model=ScheduleList)
def get_schedules(
    page: int = PageParam,
    limit: int = LimitParam,
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Paginated schedules, soonest first. Unknown statuses are ignored."""
    query = db.query(GenerationSchedule).options(
        joinedload(GenerationSchedule.topic).joinedload(Topic.category),
        joinedload(GenerationSchedule.category),
        joinedload(GenerationSchedule.author),
        joinedload(GenerationSchedule.generated_post),
    )
    if status_filter in SCHEDULE_STATUSES:
        query = query.filter(GenerationSchedule.status == status_filter)
    query = query.order_by(
        GenerationSchedule.scheduled_for.asc(), GenerationSchedule.id.asc()
    )

    schedules, pagination = paginate(query, page, limit)
    return {"schedules": schedules, "pagination": pagination}


@router.delete("/schedule/{schedule_id}")
def cancel_schedule(
    schedule_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Cancel a pending schedule and return its topic to the queue."""
    schedule = (
        db.query(GenerationSchedule)
        .filter(GenerationSchedule.id == schedule_id)
        .first()
    )
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")

    if schedule.status != SCHEDULE_PENDING:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel a schedule with status '{schedule.status}'",
        )

    if schedule.topic_id:
        topic = db.query(Topic).filter(Topic.id == schedule.topic_id).first()
        if topic:
            topic.status = "pending"
            topic.scheduled_for = None

    db.delete(schedule)
    db.commit()

    log_admin_action(
        request,
        current_admin,
        "generation.schedule.cancelled",
        f"Generation schedule {schedule_id} cancelled",
        schedule_id=schedule_id,
    )

    return {"success": True, "message": "Scheduled generation cancelled successfully"}
