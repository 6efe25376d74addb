"""权限点模型。"""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rcm_api.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin, TreeNodeMixin
from rcm_api.models.enums import PermissionLevel


class Permission(Base, IntegerPrimaryKeyMixin, TreeNodeMixin, TimestampMixin):
    """权限点。

    说明：
    1. 固定两级结构：class 级为根，method 级必须挂在 class 级之下。
    2. 层级约束由服务层校验，数据库只负责外键与唯一性。
    """

    __tablename__ = "permission"

    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("permission.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="所属 class 级权限 ID。",
    )
    # 权限层级（class/method）。
    level: Mapped[str] = mapped_column(String(16), nullable=False, default=PermissionLevel.CLASS, comment="权限层级。")
    code: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, comment="权限编码。")
    description: Mapped[str | None] = mapped_column(Text, nullable=True, comment="权限说明。")
