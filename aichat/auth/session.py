"""
Bearer session management.

Sessions are stored server-side with the token hashed; the plain token is
returned once at login and then sent by the client in the
`Authorization: Bearer` header.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from aichat.config import get_settings
from aichat.db.base import utcnow
from aichat.db.models import User, UserSession


@dataclass
class SessionData:
    """Session data returned from session operations."""

    session_id: str
    user_id: str
    token: str  # Plain token, handed to the client once
    expires_at: datetime


def _hash_token(token: str) -> str:
    """SHA-256 of the token; the token itself carries 32 random bytes."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def create_session(
    db: Session,
    user: User,
    ip_address: str | None = None,
    user_agent: str | None = None,
    ttl_seconds: int | None = None,
) -> SessionData:
    """
    Create a new bearer session for a user.

    Args:
        db: Database session.
        user: User to create session for.
        ip_address: Client IP address.
        user_agent: Client User-Agent header.
        ttl_seconds: Lifetime override; defaults to SESSION_TTL_SECONDS.

    Returns:
        SessionData with the plain token.
    """
    ttl = ttl_seconds if ttl_seconds is not None else get_settings().session_ttl_seconds

    token = generate_session_token()
    expires_at = utcnow() + timedelta(seconds=ttl)

    session = UserSession(
        user_id=user.id,
        token_hash=_hash_token(token),
        expires_at=expires_at,
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
    )
    db.add(session)
    db.commit()

    return SessionData(
        session_id=session.id,
        user_id=user.id,
        token=token,
        expires_at=expires_at,
    )


def validate_session(
    db: Session,
    token: str,
) -> tuple[UserSession, User] | None:
    """
    Resolve a bearer token to its live session and user.

    Returns:
        Tuple of (UserSession, User) if valid, None otherwise.
    """
    stmt = (
        select(UserSession)
        .where(UserSession.token_hash == _hash_token(token))
        .where(UserSession.expires_at > utcnow())
    )
    session = db.execute(stmt).scalar_one_or_none()
    if not session:
        return None

    user = db.get(User, session.user_id)
    if not user:
        return None

    return session, user


def delete_session(db: Session, session_id: str) -> bool:
    stmt = delete(UserSession).where(UserSession.id == session_id)
    result = db.execute(stmt)
    db.commit()
    return result.rowcount > 0


def cleanup_expired_sessions(db: Session) -> int:
    """Delete all expired sessions. Returns the number removed."""
    stmt = delete(UserSession).where(UserSession.expires_at <= utcnow())
    result = db.execute(stmt)
    db.commit()
    return result.rowcount
