"""接口依赖：注入应用服务并基于 Bearer 令牌解析当前用户。"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from projectflow.application.container import get_project_service
from projectflow.application.service import ProjectFlowService
from projectflow.domain.errors import AuthenticationError
from projectflow.infra.db.models import UserORM

logger = logging.getLogger(__name__)


def get_service() -> ProjectFlowService:
    return get_project_service()


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    service: ProjectFlowService = Depends(get_service),
) -> UserORM:
    """缺少令牌返回 401，令牌无效返回 400。"""
    token = (authorization or "").removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access denied")
    try:
        return service.authenticate(token)
    except AuthenticationError as exc:
        logger.info("token rejected", extra={"event": "auth.token.rejected", "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token") from exc


ServiceDep = Annotated[ProjectFlowService, Depends(get_service)]
CurrentUser = Annotated[UserORM, Depends(get_current_user)]
