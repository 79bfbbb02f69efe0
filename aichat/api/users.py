"""Endpoints for the authenticated user's own account."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session

from aichat.api.schemas import CamelModel, UserResponse
from aichat.auth import RequireAuth
from aichat.core import EmailTakenError, get_logger
from aichat.db import get_db
from aichat.db.repositories import delete_user, email_exists, update_user_profile

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class UpdateProfileRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None


@router.get("/profile")
async def get_profile(auth: RequireAuth) -> dict[str, Any]:
    user, _ = auth
    return {"data": UserResponse.from_user(user).to_json()}


@router.put("/profile")
async def update_profile(
    body: UpdateProfileRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    if body.email and email_exists(db, body.email, exclude_user_id=user.id):
        raise EmailTakenError()
    user = update_user_profile(db, user, name=body.name, email=body.email)
    return {"data": UserResponse.from_user(user).to_json()}


@router.delete("/account")
async def delete_account(
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, str]:
    """Delete the caller's account together with everything it owns."""
    user, _ = auth
    user_id = user.id
    delete_user(db, user)
    logger.info("Account deleted", data={"user_id": user_id})
    return {"status": "deleted"}
