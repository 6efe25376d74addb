"""权限点相关请求结构。"""

from pydantic import BaseModel, Field, PositiveInt

from rcm_api.models.enums import PermissionLevel
from rcm_api.schemas.common import PartialUpdateSchema


class PermissionCreateRequest(BaseModel):
    """权限点创建请求。"""

    parent_id: PositiveInt | None = Field(default=None, description="所属 class 级权限 ID，class 级必须为空。")
    level: PermissionLevel = Field(description="权限层级（class/method）。")
    name: str = Field(min_length=1, description="权限名称。")
    code: str = Field(min_length=1, max_length=128, description="权限编码，全局唯一。", examples=["user:list"])
    path: str | None = Field(default=None, description="接口路径。")
    icon: str | None = Field(default=None, description="图标标识。")
    description: str | None = Field(default=None, description="权限说明。")
    sort: int = Field(default=0, description="同级排序值。")
    enabled: int = Field(default=1, ge=0, le=1, description="是否启用（0/1）。")


class PermissionUpdateRequest(PartialUpdateSchema):
    """权限点局部更新请求。"""

    nullable_fields = frozenset({"parent_id", "path", "icon", "description"})

    parent_id: PositiveInt | None = Field(default=None, description="所属 class 级权限 ID。")
    level: PermissionLevel | None = Field(default=None, description="权限层级。")
    name: str | None = Field(default=None, min_length=1, description="权限名称。")
    code: str | None = Field(default=None, min_length=1, max_length=128, description="权限编码。")
    path: str | None = Field(default=None, description="接口路径。")
    icon: str | None = Field(default=None, description="图标标识。")
    description: str | None = Field(default=None, description="权限说明。")
    sort: int | None = Field(default=None, description="同级排序值。")
    enabled: int | None = Field(default=None, ge=0, le=1, description="是否启用（0/1）。")
