"""日志上下文：基于 contextvars 透传 request/user/worker_task 标识。"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Iterator

_UNSET = object()

_request_id_var: ContextVar[str | None] = ContextVar("log_request_id", default=None)
_user_id_var: ContextVar[str | None] = ContextVar("log_user_id", default=None)
_worker_task_id_var: ContextVar[str | None] = ContextVar("log_worker_task_id", default=None)

_VARS: dict[str, ContextVar[str | None]] = {
    "request_id": _request_id_var,
    "user_id": _user_id_var,
    "worker_task_id": _worker_task_id_var,
}

LOG_CONTEXT_KEYS: tuple[str, ...] = tuple(_VARS)


def get_log_context() -> dict[str, str | None]:
    """返回当前协程/线程下的日志上下文字段。"""
    return {key: var.get() for key, var in _VARS.items()}


@contextmanager
def bind_log_context(
    *,
    request_id: str | None | object = _UNSET,
    user_id: str | None | object = _UNSET,
    worker_task_id: str | None | object = _UNSET,
) -> Iterator[None]:
    """在上下文范围内绑定日志字段，并在退出时自动恢复。"""
    values = {"request_id": request_id, "user_id": user_id, "worker_task_id": worker_task_id}
    tokens: list[tuple[ContextVar[Any], Token[Any]]] = []
    for key, value in values.items():
        if value is not _UNSET:
            var = _VARS[key]
            tokens.append((var, var.set(value)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)
