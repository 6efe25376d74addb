"""核心领域错误定义。

调用方依据 `kind` 分支处理，不依赖错误信息字符串匹配。
"""

from typing import Any

from rcm_api.models.enums import ErrorKind


class ConfigError(Exception):
    """配置核心统一错误基类。"""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class ValidationFailed(ConfigError):
    """输入违反领域约束（自引用、成环、层级错误、ID 重复或不存在等）。"""

    kind = ErrorKind.VALIDATION


class ConflictError(ConfigError):
    """存储层拒绝写入（唯一约束、外键约束等）。"""

    kind = ErrorKind.CONFLICT


class NotFoundError(ConfigError):
    """目标记录不存在。"""

    kind = ErrorKind.NOT_FOUND


class TransientStoreError(ConfigError):
    """存储读写失败，事务已回滚，不自动重试。"""

    kind = ErrorKind.TRANSIENT
