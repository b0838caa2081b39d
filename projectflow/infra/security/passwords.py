"""口令哈希：基于 bcrypt 生成与校验口令摘要。"""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

# bcrypt 只使用前 72 字节。
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt 口令哈希器，work factor 由配置注入。"""

    def __init__(self, rounds: int = 10) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """生成口令哈希，空口令或超长口令抛出 ValueError。"""
        if not password:
            raise ValueError("password cannot be empty")
        encoded = password.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        if not password or not hashed:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError as exc:
            logger.warning(
                "password hash malformed",
                extra={"event": "auth.password.malformed_hash", "error_type": type(exc).__name__, "error": str(exc)},
            )
            return False
