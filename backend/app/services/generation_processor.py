from typing import Dict, List, Optional
from datetime import datetime
from sqlalchemy.orm import Session
from app.api.validation import utcnow
from app.models.category import Category
from app.models.generation_schedule import (
    GenerationSchedule,
    SCHEDULE_PENDING,
    SCHEDULE_PROCESSING,
    SCHEDULE_COMPLETED,
    SCHEDULE_FAILED,
)
from app.models.post import Post
from app.models.topic import Topic
from app.models.user import User
from app.services.content_generator import ContentGenerator
import logging

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Write a comprehensive blog post about {title}.
The post should cover the following aspects:
- {description}
- Focus on {{{{category}}}} industry insights
- Include up-to-date information
- Provide actionable advice for readers"""

ASSETS_LINE = "\n- Discuss these assets where relevant: {{assets}}"


class ScheduleProcessingError(Exception):
    """A single schedule could not be turned into a post."""


def build_prompt_template(schedule: GenerationSchedule) -> str:
    """Prompt template for a schedule, keeping category/asset placeholders."""
    template = PROMPT_TEMPLATE.format(
        title=schedule.title,
        description=schedule.description or schedule.title,
    )
    if schedule.related_assets:
        template += ASSETS_LINE
    return template


class GenerationProcessor:
    """
    Turns due generation schedules into published posts.

    Schedules are processed one at a time in scheduled_for order. Each one is
    first claimed with a conditional pending -> processing update so that two
    overlapping cron invocations never generate the same schedule twice. A
    failure is recorded on that schedule only and never retried.
    """

    def __init__(self, db: Session, generator: ContentGenerator):
        self.db = db
        self.generator = generator

    def find_due_schedules(self, now: datetime) -> List[GenerationSchedule]:
        return (
            self.db.query(GenerationSchedule)
            .filter(
                GenerationSchedule.status == SCHEDULE_PENDING,
                GenerationSchedule.scheduled_for <= now,
            )
            .order_by(GenerationSchedule.scheduled_for.asc(), GenerationSchedule.id)
            .all()
        )

    def claim(self, schedule_id: int) -> bool:
        """Atomically move a schedule from pending to processing."""
        claimed = (
            self.db.query(GenerationSchedule)
            .filter(
                GenerationSchedule.id == schedule_id,
                GenerationSchedule.status == SCHEDULE_PENDING,
            )
            .update(
                {
                    GenerationSchedule.status: SCHEDULE_PROCESSING,
                    GenerationSchedule.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return claimed == 1

    async def process_due_schedules(self, now: Optional[datetime] = None) -> Dict:
        """
        Process every pending schedule whose time has come.

        Returns:
            Summary dict with message, processed, success, failure and results.
        """
        now = now or utcnow()
        due = self.find_due_schedules(now)
        due_ids = [schedule.id for schedule in due]

        if not due_ids:
            logger.info("No pending schedules to process")
            return {
                "message": "No pending schedules to process",
                "processed": 0,
                "success": 0,
                "failure": 0,
                "results": [],
            }

        logger.info(f"Found {len(due_ids)} due generation schedules")

        results = []
        success_count = 0
        failure_count = 0

        for schedule_id in due_ids:
            if not self.claim(schedule_id):
                logger.info(f"Schedule {schedule_id} already claimed, skipping")
                continue

            try:
                post = await self._process_schedule(schedule_id)
            except BaseException as e:
                error_message = str(e) or type(e).__name__
                if not isinstance(e, Exception):
                    # Cancelled mid-item: record the failure so the schedule
                    # never stays claimed, then let the cancellation through
                    logger.warning(f"Schedule {schedule_id} interrupted: {error_message}")
                    self._mark_failed(schedule_id, error_message)
                    raise
                logger.error(f"Schedule {schedule_id} failed: {error_message}")
                self._mark_failed(schedule_id, error_message)
                failure_count += 1
                results.append(
                    {"schedule": schedule_id, "status": "failed", "error": error_message}
                )
                continue

            success_count += 1
            logger.info(f"Schedule {schedule_id} generated post {post.id}: {post.title}")
            results.append(
                {
                    "schedule": schedule_id,
                    "status": "success",
                    "post": post.id,
                    "title": post.title,
                }
            )

        processed = success_count + failure_count
        return {
            "message": (
                f"Processed {processed} schedules: "
                f"{success_count} succeeded, {failure_count} failed"
            ),
            "processed": processed,
            "success": success_count,
            "failure": failure_count,
            "results": results,
        }

    async def _process_schedule(self, schedule_id: int) -> Post:
        schedule = self.db.get(GenerationSchedule, schedule_id)
        if schedule is None:
            raise ScheduleProcessingError("Schedule not found")

        author = self._resolve_author(schedule)

        category = self.db.get(Category, schedule.category_id)
        if category is None:
            raise ScheduleProcessingError("Category not found")

        related_assets = list(schedule.related_assets or [])
        generated = await self.generator.generate_post(
            build_prompt_template(schedule), category.name, related_assets
        )
        if generated is None:
            raise ScheduleProcessingError("Failed to generate post content")

        post = Post(
            title=generated.title,
            slug=self._unique_slug(generated.slug),
            excerpt=generated.excerpt,
            content=generated.content,
            cover_image=generated.cover_image,
            published_at=generated.published_at,
            reading_time=generated.reading_time,
            author_id=author.id,
            category_id=category.id,
            is_generated=True,
            related_assets=generated.related_assets,
            tags=generated.tags,
        )
        self.db.add(post)
        self.db.flush()

        schedule.status = SCHEDULE_COMPLETED
        schedule.generated_post_id = post.id
        schedule.error_message = None

        if schedule.topic_id:
            topic = self.db.get(Topic, schedule.topic_id)
            if topic:
                topic.status = "generated"

        self.db.commit()
        self.db.refresh(post)
        return post

    def _resolve_author(self, schedule: GenerationSchedule) -> User:
        """Use the scheduling admin, falling back to any admin account."""
        if schedule.author_id:
            author = self.db.get(User, schedule.author_id)
            if author:
                return author

        admin = (
            self.db.query(User)
            .filter(User.is_admin == True, User.is_active == True)
            .order_by(User.id)
            .first()
        )
        if admin is None:
            raise ScheduleProcessingError("No admin user found to assign as author")
        return admin

    def _unique_slug(self, slug: str) -> str:
        """Append -2, -3, ... until the slug is not used by another post."""
        candidate = slug
        suffix = 2
        while self.db.query(Post.id).filter(Post.slug == candidate).first():
            candidate = f"{slug}-{suffix}"
            suffix += 1
        return candidate

    def _mark_failed(self, schedule_id: int, error_message: str) -> None:
        self.db.rollback()
        schedule = self.db.get(GenerationSchedule, schedule_id)
        if schedule is None:
            return
        schedule.status = SCHEDULE_FAILED
        schedule.error_message = error_message[:1000]
        self.db.commit()
