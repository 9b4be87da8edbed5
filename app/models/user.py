"""
User database model.
"""
from sqlalchemy import Column, String, DateTime

from app.core.database import Base
from app.utils.dates import utcnow


class User(Base):
    """Local mirror of an identity-provider account."""

    __tablename__ = "users"

    # Subject claim issued by the identity provider
    id = Column(String, primary_key=True)
    email = Column(String, index=True)
    name = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
