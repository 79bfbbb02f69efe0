"""
FastAPI dependencies for authentication.

Routes declare `auth: RequireAuth` to receive the authenticated
(User, UserSession) pair.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from aichat.auth.session import validate_session
from aichat.core import (
    AccountDisabledError,
    SessionExpiredError,
    UnauthorizedError,
)
from aichat.db import get_db
from aichat.db.models import User, UserSession


def get_bearer_token(request: Request) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_auth(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> tuple[User, UserSession]:
    """
    Require authentication - raises if not authenticated.

    Raises:
        UnauthorizedError: If no bearer token is presented.
        SessionExpiredError: If the token is unknown or expired.
        AccountDisabledError: If the user account is disabled.
    """
    token = get_bearer_token(request)
    if not token:
        raise UnauthorizedError("Authentication required")

    result = validate_session(db, token)
    if not result:
        raise SessionExpiredError("Session expired or invalid")

    session, user = result

    if not user.is_active:
        raise AccountDisabledError("Account is disabled")

    return user, session


# Type aliases for cleaner dependency injection
RequireAuth = Annotated[tuple[User, UserSession], Depends(require_auth)]
