"""Authentication: password hashing, bearer sessions and route dependencies."""

from aichat.auth.dependencies import (
    RequireAuth,
    get_bearer_token,
    require_auth,
)
from aichat.auth.password import (
    MIN_PASSWORD_LENGTH,
    hash_password,
    needs_rehash,
    verify_password,
)
from aichat.auth.session import (
    SessionData,
    cleanup_expired_sessions,
    create_session,
    delete_session,
    validate_session,
)

__all__ = [
    # Password
    "MIN_PASSWORD_LENGTH",
    "hash_password",
    "verify_password",
    "needs_rehash",
    # Session
    "SessionData",
    "create_session",
    "delete_session",
    "validate_session",
    "cleanup_expired_sessions",
    # Dependencies
    "get_bearer_token",
    "require_auth",
    # Type aliases
    "RequireAuth",
]
