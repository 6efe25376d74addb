"""领域枚举定义。"""

from enum import StrEnum


class PermissionLevel(StrEnum):
    """权限层级。"""

    CLASS = "class"  # 类级权限，只能作为根节点。
    METHOD = "method"  # 方法级权限，必须挂在类级权限之下。


class BindAction(StrEnum):
    """批量授权动作。"""

    BIND = "bind"  # 追加绑定，已存在的关联忽略。
    UNBIND = "unbind"  # 解除绑定，不存在的关联忽略。


class ErrorKind(StrEnum):
    """核心错误分类。"""

    VALIDATION = "validation"  # 输入违反领域约束。
    CONFLICT = "conflict"  # 存储层约束冲突（如编码重复）。
    NOT_FOUND = "not_found"  # 目标记录不存在。
    TRANSIENT = "transient"  # 存储读写失败，可稍后重试。
