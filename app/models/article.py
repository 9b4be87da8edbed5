"""
Article database model.
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text

from app.core.database import Base, JSONType
from app.core.statuses import ArticleStatus
from app.utils.dates import utcnow


class Article(Base):
    """An article moving through the idea -> generation -> publish workflow."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    keywords = Column(JSONType, default=list, nullable=False)
    target_audience = Column(String)
    notes = Column(Text)
    status = Column(String, default=ArticleStatus.IDEA.value, nullable=False, index=True)

    # Publishing
    publish_scheduled_at = Column(DateTime(timezone=True))
    published_at = Column(DateTime(timezone=True))

    estimated_read_time = Column(Integer)
    kanban_position = Column(Integer, default=0, nullable=False)

    # SEO
    slug = Column(String)
    meta_description = Column(Text)
    meta_keywords = Column(JSONType, default=list)

    # Content
    draft = Column(Text)
    content = Column(Text)
    seo_score = Column(Integer)
    sources = Column(JSONType, default=list)
    fact_check_report = Column(JSONType, default=dict)
    cover_image_url = Column(String)
    cover_image_alt = Column(String)

    # Analytics
    views = Column(Integer, default=0, nullable=False)
    clicks = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def article_status(self) -> ArticleStatus:
        return ArticleStatus(self.status)
