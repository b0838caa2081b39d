"""领域异常定义：任务分配与认证相关的业务错误。"""

from __future__ import annotations


class AssignmentError(ValueError):
    """任务自动分配失败的基类异常。"""


class NoEligibleCandidates(AssignmentError):
    """候选人池为空时抛出。"""

    def __init__(self, message: str = "no eligible candidates for assignment") -> None:
        super().__init__(message)


class InvalidPriority(AssignmentError):
    """优先级不在 high/medium/low 取值范围内时抛出。"""

    def __init__(self, priority: object) -> None:
        super().__init__(f"invalid priority: {priority!r}")
        self.priority = priority


class AuthenticationError(Exception):
    """凭据或令牌校验失败。"""


class DuplicateEmailError(ValueError):
    """注册邮箱已存在。"""

    def __init__(self, email: str) -> None:
        super().__init__("Email already exists")
        self.email = email
