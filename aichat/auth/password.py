"""
Password hashing using Argon2id.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher(
    time_cost=3,
    memory_cost=65536,  # 64 MiB
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

MIN_PASSWORD_LENGTH = 6


def hash_password(password: str) -> str:
    """Hash a password; the result embeds algorithm parameters and salt."""
    return _hasher.hash(password)


def verify_password(password: str, hash_str: str) -> bool:
    """Check a password against a stored hash. Never raises on mismatch."""
    try:
        _hasher.verify(hash_str, password)
        return True
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hash_str: str) -> bool:
    return _hasher.check_needs_rehash(hash_str)
