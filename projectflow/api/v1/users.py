"""用户目录接口。"""

from __future__ import annotations

from fastapi import APIRouter

from projectflow.api.deps import CurrentUser, ServiceDep
from projectflow.api.v1.schemas import UserResponse, to_user_response
from projectflow.infra.logging.context import bind_log_context

router = APIRouter()


@router.get("/users", response_model=list[UserResponse])
def list_users(user: CurrentUser, service: ServiceDep) -> list[UserResponse]:
    with bind_log_context(user_id=user.id):
        return [to_user_response(item) for item in service.list_users()]
