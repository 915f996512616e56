"""
Resolution of the authenticated caller.

Access tokens are issued by the external identity provider as HS256 JWTs
whose subject is the user id. This module verifies them and resolves an
explicit CurrentUser value that is passed to every operation needing it.
"""

import logging
import uuid

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .models_db import Role, UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthenticationError(Exception):
    """Raised when an access token cannot be verified."""

    pass


class CurrentUser(BaseModel):
    """The authenticated caller."""

    id: uuid.UUID
    email: str | None = None
    is_admin: bool = False


def decode_access_token(token: str) -> dict:
    """
    Verify an access token and return its claims.

    Raises:
        AuthenticationError: If the token is invalid, expired or the
            secret is not configured.
    """
    settings = get_settings()
    if not settings.jwt_secret:
        raise AuthenticationError("JWT secret is not configured")

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {e}") from e


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser | None:
    """
    Resolve the caller, or None when no bearer token is sent.

    A token that is present but invalid is rejected with 401.
    """
    if credentials is None:
        return None

    try:
        claims = decode_access_token(credentials.credentials)
        user_id = uuid.UUID(claims["sub"])
    except (AuthenticationError, ValueError) as e:
        logger.warning("Rejected access token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    is_admin = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.role == Role.ADMIN)
        .first()
        is not None
    )
    return CurrentUser(id=user_id, email=claims.get("email"), is_admin=is_admin)


def get_current_user(
    user: CurrentUser | None = Depends(get_optional_user),
) -> CurrentUser:
    """Resolve the caller, rejecting anonymous requests with 401."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Resolve the caller, rejecting non-administrators with 403."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return user
