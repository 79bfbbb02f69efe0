"""
Authentication API endpoints.

Handles registration, login, logout and the current-user lookup.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session

from aichat.api.schemas import CamelModel, UserResponse
from aichat.auth import (
    MIN_PASSWORD_LENGTH,
    RequireAuth,
    SessionData,
    cleanup_expired_sessions,
    create_session,
    delete_session,
    hash_password,
    needs_rehash,
    verify_password,
)
from aichat.config import get_settings
from aichat.core import (
    AccountDisabledError,
    EmailTakenError,
    InvalidCredentialsError,
    RegistrationDisabledError,
    get_logger,
)
from aichat.db import get_db
from aichat.db.models import User
from aichat.db.repositories import create_user, email_exists, get_user_by_email

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(CamelModel):
    """Registration request body."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class LoginRequest(CamelModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1)


def get_client_ip(request: Request) -> str | None:
    """Extract client IP address from request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _auth_payload(user: User, session_data: SessionData) -> dict[str, Any]:
    return {
        "user": UserResponse.from_user(user).to_json(),
        "token": {
            "accessToken": session_data.token,
            "tokenType": "Bearer",
            "expiresAt": session_data.expires_at.isoformat(),
        },
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    """
    Register a new user account.

    Only available when REGISTRATION_ENABLED is true.
    """
    if not get_settings().registration_enabled:
        raise RegistrationDisabledError()

    if email_exists(db, body.email):
        raise EmailTakenError()

    user = create_user(
        db,
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
    )
    session_data = create_session(
        db,
        user,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    logger.info("User registered", data={"user_id": user.id})
    return _auth_payload(user, session_data)


@router.post("/login")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    """
    Log in with email and password.

    Returns user info and a bearer token.
    """
    user = get_user_by_email(db, body.email)
    if not user or not verify_password(body.password, user.password_hash):
        logger.info("Login failed", data={"known_user": user is not None})
        raise InvalidCredentialsError()

    if not user.is_active:
        raise AccountDisabledError()

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(body.password)
        db.commit()

    removed = cleanup_expired_sessions(db)
    if removed:
        logger.debug("Expired sessions removed", data={"count": removed})

    session_data = create_session(
        db,
        user,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    logger.info("User logged in", data={"user_id": user.id})
    return _auth_payload(user, session_data)


@router.post("/logout")
async def logout(
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, str]:
    """Invalidate the bearer token used for this request."""
    user, session = auth
    delete_session(db, session.id)
    logger.info("User logged out", data={"user_id": user.id})
    return {"status": "logged_out"}


@router.get("/me")
async def me(auth: RequireAuth) -> dict[str, Any]:
    """Get the authenticated user."""
    user, _ = auth
    return {"user": UserResponse.from_user(user).to_json()}
