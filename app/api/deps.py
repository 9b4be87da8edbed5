"""
Shared FastAPI dependencies.
"""
from typing import Optional
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import AuthenticationException, ValidationException
from app.core.logging import get_logger
from app.core.security import verify_token
from app.models.user import User

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Resolve the caller from the bearer token.

    Accounts live with the identity provider; the first request from a new
    subject creates the local user row.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException()

    payload = verify_token(credentials.credentials)
    user_id = payload["sub"]

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    email = payload.get("email")

    if user is None:
        user = User(id=user_id, email=email, name=payload.get("name"))
        db.add(user)
        await db.commit()
        logger.info("Provisioned user from identity provider", user_id=user_id)
    elif email and user.email != email:
        user.email = email
        await db.commit()

    return user


def get_project_header(x_project_id: Optional[str] = Header(None)) -> Optional[int]:
    """Project selected in the dashboard, sent as ``X-Project-Id``."""
    if x_project_id is None or x_project_id == "":
        return None
    try:
        return int(x_project_id)
    except ValueError:
        raise ValidationException("Invalid X-Project-Id header")
