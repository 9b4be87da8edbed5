"""
Generation snapshot and generation queue models.
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text

from app.core.database import Base, JSONType
from app.core.statuses import GenerationStatus, QueueStatus
from app.utils.dates import utcnow


class ArticleGeneration(Base):
    """
    Progress of one generation run for an article.

    Several rows can exist per article; only the most recently created one
    is considered current.
    """

    __tablename__ = "article_generations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"))
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(String)
    status = Column(String, default=GenerationStatus.PENDING.value, nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    current_phase = Column(String)
    scheduled_at = Column(DateTime(timezone=True))
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    research_data = Column(JSONType, default=dict)
    outline = Column(JSONType)
    draft_content = Column(Text)
    validation_report = Column(Text)
    artifacts = Column(JSONType, default=dict, nullable=False)
    error = Column(Text)
    error_details = Column(JSONType)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class QueueItem(Base):
    """A scheduled request to generate an article on a given date."""

    __tablename__ = "generation_queue"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"))
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    added_to_queue_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    scheduled_for_date = Column(DateTime(timezone=True), nullable=False)
    queue_position = Column(Integer)
    # manual | automatic
    scheduling_type = Column(String, default="manual", nullable=False)
    status = Column(String, default=QueueStatus.QUEUED.value, nullable=False, index=True)
    attempts = Column(Integer, default=0, nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    error_message = Column(Text)
    processed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
