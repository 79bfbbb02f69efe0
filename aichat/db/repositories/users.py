"""
User repository for database operations.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from aichat.db.models import User


def get_user_by_id(db: Session, user_id: str) -> User | None:
    """Get user by ID."""
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    if not email:
        return None
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return db.execute(stmt).scalar_one_or_none()


def email_exists(db: Session, email: str, exclude_user_id: str | None = None) -> bool:
    """Check if email is taken, optionally ignoring one account."""
    user = get_user_by_email(db, email)
    if user is None:
        return False
    return user.id != exclude_user_id


def create_user(
    db: Session,
    name: str,
    email: str,
    password_hash: str,
    is_active: bool = True,
) -> User:
    """
    Create a new user.

    Args:
        db: Database session.
        name: Display name.
        email: Unique email address, stored lower-cased.
        password_hash: Argon2id password hash.
        is_active: Whether the account may log in.

    Returns:
        Created User object.
    """
    user = User(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user_profile(
    db: Session,
    user: User,
    name: str | None = None,
    email: str | None = None,
) -> User:
    """Update name and/or email of an existing user."""
    if name is not None and name.strip():
        user.name = name.strip()
    if email is not None and email.strip():
        user.email = email.strip().lower()
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    """Delete a user; sessions, conversations and fixed prompts go with it."""
    db.delete(user)
    db.commit()
