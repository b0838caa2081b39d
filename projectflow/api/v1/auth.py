"""账户接口：注册与登录。"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from projectflow.api.deps import ServiceDep
from projectflow.api.v1.schemas import AuthResponse, LoginRequest, RegisterRequest, to_user_response
from projectflow.domain.errors import AuthenticationError

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, service: ServiceDep) -> AuthResponse:
    """注册新账户并返回用户与令牌。"""
    try:
        user, token = service.register(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AuthResponse(user=to_user_response(user), token=token)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, service: ServiceDep) -> AuthResponse:
    try:
        user, token = service.login(email=payload.email, password=payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=400, detail="Invalid credentials") from exc
    return AuthResponse(user=to_user_response(user), token=token)
