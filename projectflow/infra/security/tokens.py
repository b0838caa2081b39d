"""访问令牌：签发与校验携带用户 ID 和角色的 JWT。"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from projectflow.domain.errors import AuthenticationError


@dataclass(slots=True, frozen=True)
class TokenClaims:
    """解码后的令牌声明。"""
    user_id: str
    role: str
    expires_at: datetime


class TokenService:
    """HS256 JWT 签发与校验服务。"""

    def __init__(self, *, secret: str, algorithm: str = "HS256", expire_days: int = 7) -> None:
        if not secret:
            raise ValueError("jwt secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._expire_delta = timedelta(days=expire_days)

    def issue(self, user_id: str, role: str, *, now: datetime | None = None) -> str:
        """签发访问令牌。"""
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self._expire_delta,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, token: str) -> TokenClaims:
        """校验签名与有效期；失败时抛出 AuthenticationError。"""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError(f"invalid token: {exc}") from exc

        user_id = payload.get("id")
        role = payload.get("role")
        if not user_id or not role:
            raise AuthenticationError("token is missing required claims")
        return TokenClaims(
            user_id=str(user_id),
            role=str(role),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
