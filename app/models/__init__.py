"""
Database models package.
"""
from .user import User
from .project import Project
from .article import Article
from .generation import ArticleGeneration, QueueItem
from .webhook import WebhookDelivery

__all__ = [
    "User",
    "Project",
    "Article",
    "ArticleGeneration",
    "QueueItem",
    "WebhookDelivery",
]
