"""
Project database model.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey

from app.core.database import Base
from app.utils.dates import utcnow


class Project(Base):
    """A website or publication owned by a user; articles always belong to one."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    website_url = Column(String)
    webhook_url = Column(String)
    webhook_enabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
