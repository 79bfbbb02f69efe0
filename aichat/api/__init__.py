"""API routers."""

from fastapi import APIRouter

from aichat.api.ai import router as ai_router
from aichat.api.auth import router as auth_router
from aichat.api.conversations import router as conversations_router
from aichat.api.fixed_prompts import router as fixed_prompts_router
from aichat.api.health import router as health_router
from aichat.api.messages import router as messages_router
from aichat.api.users import router as users_router

API_PREFIX = "/api/v1"

v1_router = APIRouter(prefix=API_PREFIX)
v1_router.include_router(auth_router)
v1_router.include_router(ai_router)
v1_router.include_router(conversations_router)
v1_router.include_router(messages_router)
v1_router.include_router(fixed_prompts_router)
v1_router.include_router(users_router)

__all__ = [
    "API_PREFIX",
    "health_router",
    "v1_router",
]
