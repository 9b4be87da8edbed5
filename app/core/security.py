"""
Verification of bearer tokens issued by the external identity provider.
"""
from typing import Any, Dict

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import AuthenticationException


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a provider-issued JWT.

    Args:
        token: Raw bearer token

    Returns:
        The token claims

    Raises:
        AuthenticationException: If the token is malformed, expired or has no subject
    """
    options = {"verify_aud": settings.auth_jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except ExpiredSignatureError as e:
        raise AuthenticationException("Token has expired") from e
    except JWTError as e:
        raise AuthenticationException("Could not validate credentials") from e

    if not payload.get("sub"):
        raise AuthenticationException("Invalid token payload")
    return payload
