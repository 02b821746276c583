from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base

SCHEDULE_PENDING = "pending"
SCHEDULE_PROCESSING = "processing"
SCHEDULE_COMPLETED = "completed"
SCHEDULE_FAILED = "failed"

SCHEDULE_STATUSES = (
    SCHEDULE_PENDING,
    SCHEDULE_PROCESSING,
    SCHEDULE_COMPLETED,
    SCHEDULE_FAILED,
)


class GenerationSchedule(Base):
    __tablename__ = "generation_schedules"

    id = Column(Integer, primary_key=True, index=True)
    # Null when scheduled directly rather than from a submitted topic
    topic_id = Column(
        Integer, ForeignKey("topics.id", ondelete="SET NULL"), nullable=True
    )
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    related_assets = Column(JSON, default=list)

    scheduled_for = Column(DateTime, nullable=False)
    # pending -> processing -> completed | failed; terminal after that
    status = Column(String(20), default=SCHEDULE_PENDING, nullable=False)

    generated_post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True
    )
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    topic = relationship("Topic")
    category = relationship("Category")
    author = relationship("User")
    generated_post = relationship("Post")

    __table_args__ = (Index("idx_schedule_status_due", "status", "scheduled_for"),)
