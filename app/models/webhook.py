"""
Webhook delivery log model.
"""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text

from app.core.database import Base, JSONType
from app.utils.dates import utcnow


class WebhookDelivery(Base):
    """One attempt to notify a project's webhook about an article event."""

    __tablename__ = "webhook_deliveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    webhook_url = Column(String, nullable=False)
    event_type = Column(String, default="article.published", nullable=False)
    # pending | success | failed
    status = Column(String, default="pending", nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    request_payload = Column(JSONType, default=dict)
    response_status = Column(Integer)
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    delivered_at = Column(DateTime(timezone=True))
