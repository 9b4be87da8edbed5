"""
Project API endpoints.
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.logging import get_logger
from app.models.project import Project
from app.models.user import User
from app.schemas.common import ApiResponse
from app.schemas.project import ProjectCreate, ProjectResponse

logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=ApiResponse[ProjectResponse], status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreate,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    project = Project(user_id=current_user.id, **request.model_dump())
    session.add(project)
    await session.commit()
    logger.info("Project created", project_id=project.id, user_id=current_user.id)
    return ApiResponse(success=True, data=ProjectResponse.model_validate(project))


@router.get("", response_model=ApiResponse[List[ProjectResponse]])
async def list_projects(
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db)
):
    result = await session.execute(
        select(Project).where(Project.user_id == current_user.id).order_by(Project.created_at)
    )
    projects = result.scalars().all()
    return ApiResponse(success=True, data=[ProjectResponse.model_validate(p) for p in projects])
