"""菜单模型。"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from rcm_api.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin, TreeNodeMixin


class Menu(Base, IntegerPrimaryKeyMixin, TreeNodeMixin, TimestampMixin):
    """菜单节点。

    说明：
    1. 通过可空的 parent_id 自关联组成森林，层级深度不限。
    2. code 为跨库导入导出使用的自然键，全表唯一。
    """

    __tablename__ = "menu"

    # 父菜单 ID，为空表示根节点；父节点删除时级联删除子树。
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("menu.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="父菜单 ID。",
    )
    code: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, comment="菜单编码。")
