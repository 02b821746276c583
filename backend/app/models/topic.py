from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from app.core.database import Base

TOPIC_STATUSES = ("pending", "approved", "rejected", "generated")


class Topic(Base):
    __tablename__ = "topics"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    # Set when submitted by a logged-in user, otherwise email identifies the guest
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    email = Column(String, nullable=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    # pending -> approved -> generated, or rejected
    status = Column(String(20), default="pending", nullable=False, index=True)
    scheduled_for = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category = relationship("Category")
    user = relationship("User", back_populates="topics")
