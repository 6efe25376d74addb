"""菜单相关请求结构。"""

from pydantic import BaseModel, Field, PositiveInt

from rcm_api.schemas.common import PartialUpdateSchema


class MenuCreateRequest(BaseModel):
    """菜单创建请求。"""

    parent_id: PositiveInt | None = Field(default=None, description="父菜单 ID，为空表示根菜单。")
    name: str = Field(min_length=1, description="菜单名称。")
    code: str = Field(min_length=1, max_length=128, description="菜单编码，全局唯一。", examples=["system.user"])
    path: str | None = Field(default=None, description="前端路由路径。")
    icon: str | None = Field(default=None, description="图标标识。")
    sort: int = Field(default=0, description="同级排序值，升序排列。")
    enabled: int = Field(default=1, ge=0, le=1, description="是否启用（0/1）。")


class MenuUpdateRequest(PartialUpdateSchema):
    """菜单局部更新请求，`parent_id` 显式传 null 表示移动到根级。"""

    nullable_fields = frozenset({"parent_id", "path", "icon"})

    parent_id: PositiveInt | None = Field(default=None, description="新的父菜单 ID。")
    name: str | None = Field(default=None, min_length=1, description="菜单名称。")
    code: str | None = Field(default=None, min_length=1, max_length=128, description="菜单编码。")
    path: str | None = Field(default=None, description="前端路由路径。")
    icon: str | None = Field(default=None, description="图标标识。")
    sort: int | None = Field(default=None, description="同级排序值。")
    enabled: int | None = Field(default=None, ge=0, le=1, description="是否启用（0/1）。")
