"""角色与角色授权关联模型。"""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rcm_api.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin


class Role(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """角色，无层级结构。"""

    __tablename__ = "role"

    name: Mapped[str] = mapped_column(nullable=False, comment="角色名称。")
    code: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, comment="角色编码。")
    owner: Mapped[str | None] = mapped_column(nullable=True, comment="角色负责人。")
    description: Mapped[str | None] = mapped_column(Text, nullable=True, comment="角色说明。")
    enabled: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1", comment="是否启用（0/1）。")


class RoleMenu(Base):
    """角色-菜单授权关联。

    (role_id, menu_id) 作为联合主键保证不重复，任一端删除时级联清理。
    """

    __tablename__ = "role_menu"

    role_id: Mapped[int] = mapped_column(ForeignKey("role.id", ondelete="CASCADE"), primary_key=True)
    menu_id: Mapped[int] = mapped_column(ForeignKey("menu.id", ondelete="CASCADE"), primary_key=True, index=True)


class RolePermission(Base):
    """角色-权限点授权关联。"""

    __tablename__ = "role_permission"

    role_id: Mapped[int] = mapped_column(ForeignKey("role.id", ondelete="CASCADE"), primary_key=True)
    permission_id: Mapped[int] = mapped_column(
        ForeignKey("permission.id", ondelete="CASCADE"), primary_key=True, index=True
    )
