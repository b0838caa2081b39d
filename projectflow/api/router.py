"""API 总路由配置，按业务域注册 auth/users/projects/tasks 子路由。"""

from __future__ import annotations

from fastapi import APIRouter

from projectflow.api.v1.auth import router as auth_router
from projectflow.api.v1.projects import router as projects_router
from projectflow.api.v1.tasks import router as tasks_router
from projectflow.api.v1.users import router as users_router
from projectflow.config import get_settings

settings = get_settings()

api_router = APIRouter(prefix=settings.api_prefix)
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(projects_router, tags=["projects"])
api_router.include_router(tasks_router, tags=["tasks"])
