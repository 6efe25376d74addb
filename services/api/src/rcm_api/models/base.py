"""对象映射基础模型与通用混入。"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, MetaData, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """全局对象映射声明基类。"""

    metadata = MetaData(
        naming_convention={
            # 统一约束/索引命名规范。
            "pk": "pk_%(table_name)s",
            "ix": "ix_%(table_name)s_%(column_0_name)s",
            "uq": "uk_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        }
    )


class IntegerPrimaryKeyMixin:
    """提供由数据库分配的自增整数主键。"""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="主键 ID。")


class TimestampMixin:
    """提供创建时间与更新时间字段。"""

    # 记录创建时间。
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False, comment="创建时间。"
    )
    # 记录最后更新时间，每次写入都会重新打点。
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="更新时间。",
    )


class TreeNodeMixin:
    """菜单与权限共享的树节点字段。"""

    name: Mapped[str] = mapped_column(nullable=False, comment="展示名称。")
    path: Mapped[str | None] = mapped_column(nullable=True, comment="前端路由或接口路径。")
    icon: Mapped[str | None] = mapped_column(nullable=True, comment="图标标识。")
    # 同级节点按 sort 升序、id 升序排列。
    sort: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0", comment="排序值。")
    enabled: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1", comment="是否启用（0/1）。")
