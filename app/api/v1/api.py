"""
API v1 router configuration.
"""
from fastapi import APIRouter

# Import endpoint routers
from .endpoints import articles, generation_queue, projects

api_router = APIRouter()

# Include endpoint routers; the queue router goes first so its static paths win over /articles/{article_id}
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(generation_queue.router, prefix="/articles", tags=["generation-queue"])
api_router.include_router(articles.router, prefix="/articles", tags=["articles"])


@api_router.get("/")
async def api_info():
    """API v1 information endpoint."""
    return {
        "message": "Inkflow API v1",
        "version": "1.0.0",
        "endpoints": {
            "projects": "/v1/projects",
            "articles": "/v1/articles",
            "board": "/v1/articles/board",
            "generation_queue": "/v1/articles/generation-queue",
        }
    }
