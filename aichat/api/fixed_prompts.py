"""Fixed (reusable system) prompt endpoints."""

import math
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.orm import Session

from aichat.api.schemas import CamelModel, FixedPromptResponse
from aichat.auth import RequireAuth
from aichat.core import FixedPromptNotFoundError
from aichat.db import get_db
from aichat.db.repositories import (
    create_fixed_prompt,
    delete_fixed_prompt,
    get_user_fixed_prompt,
    list_user_fixed_prompts,
    update_fixed_prompt,
)

router = APIRouter(prefix="/fixed-prompts", tags=["fixed-prompts"])

MAX_PAGE_SIZE = 100


class CreateFixedPromptRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1)
    is_active: bool = True


class UpdateFixedPromptRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    content: str | None = Field(None, min_length=1)
    is_active: bool | None = None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_fixed_prompt_route(
    body: CreateFixedPromptRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    prompt = create_fixed_prompt(db, user.id, body.name, body.content, body.is_active)
    return {"data": FixedPromptResponse.from_prompt(prompt).to_json()}


@router.get("")
async def list_fixed_prompts_route(
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
    search: Annotated[str | None, Query(max_length=200)] = None,
) -> dict[str, Any]:
    """Paginated list, newest first, filtered on name or content."""
    user, _ = auth
    prompts, total = list_user_fixed_prompts(
        db, user.id, page=page, page_size=page_size, search=search
    )
    return {
        "data": {
            "items": [FixedPromptResponse.from_prompt(p).to_json() for p in prompts],
            "total": total,
            "page": page,
            "pageSize": page_size,
            "totalPages": math.ceil(total / page_size) if total else 0,
        }
    }


@router.get("/{prompt_id}")
async def get_fixed_prompt_route(
    prompt_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    prompt = get_user_fixed_prompt(db, user.id, prompt_id)
    if not prompt:
        raise FixedPromptNotFoundError()
    return {"data": FixedPromptResponse.from_prompt(prompt).to_json()}


@router.put("/{prompt_id}")
async def update_fixed_prompt_route(
    prompt_id: str,
    body: UpdateFixedPromptRequest,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    prompt = get_user_fixed_prompt(db, user.id, prompt_id)
    if not prompt:
        raise FixedPromptNotFoundError()
    prompt = update_fixed_prompt(
        db, prompt, name=body.name, content=body.content, is_active=body.is_active
    )
    return {"data": FixedPromptResponse.from_prompt(prompt).to_json()}


@router.delete("/{prompt_id}")
async def delete_fixed_prompt_route(
    prompt_id: str,
    auth: RequireAuth,
    db: Annotated[Session, Depends(get_db)],
) -> dict[str, Any]:
    user, _ = auth
    if not delete_fixed_prompt(db, user.id, prompt_id):
        raise FixedPromptNotFoundError()
    return {"status": "deleted", "id": prompt_id}
