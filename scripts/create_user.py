#!/usr/bin/env python3
"""Create a user account directly in the database.

Useful when public registration is disabled (the default).

Usage:
  python scripts/create_user.py --name Admin --email admin@example.com --password strongpass

Environment fallbacks:
  AICHAT_NAME, AICHAT_EMAIL, AICHAT_PASSWORD (DATABASE_URL selects the database)
"""
from __future__ import annotations

import argparse
import os
import sys

from aichat.auth.password import MIN_PASSWORD_LENGTH, hash_password
from aichat.db import get_session_factory
from aichat.db.repositories import create_user, email_exists


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="aichat user bootstrap")
    parser.add_argument("--name", default=os.getenv("AICHAT_NAME", "admin"))
    parser.add_argument("--email", default=os.getenv("AICHAT_EMAIL"))
    parser.add_argument("--password", default=os.getenv("AICHAT_PASSWORD"))
    parser.add_argument("--inactive", action="store_true", help="create the account disabled")
    parser.add_argument("--quiet", action="store_true")
    return parser.parse_args()


def exit_with(message: str, code: int = 1) -> None:
    print(message, file=sys.stderr)
    raise SystemExit(code)


def main() -> None:
    args = parse_args()

    if not args.email:
        exit_with("Missing email (use --email or AICHAT_EMAIL)")
    if not args.password or len(args.password) < MIN_PASSWORD_LENGTH:
        exit_with(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    with get_session_factory()() as db:
        if email_exists(db, args.email):
            if not args.quiet:
                print("User already exists; nothing to do")
            return
        user = create_user(
            db,
            name=args.name,
            email=args.email,
            password_hash=hash_password(args.password),
            is_active=not args.inactive,
        )

    if not args.quiet:
        print(f"Created user {user.email} ({user.id})")


if __name__ == "__main__":
    main()
