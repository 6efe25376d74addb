"""角色与角色授权相关请求结构。"""

from pydantic import BaseModel, Field, PositiveInt

from rcm_api.models.enums import BindAction
from rcm_api.schemas.common import PartialUpdateSchema


class RoleCreateRequest(BaseModel):
    """角色创建请求。"""

    name: str = Field(min_length=1, description="角色名称。")
    code: str = Field(min_length=1, max_length=128, description="角色编码，全局唯一。", examples=["admin"])
    owner: str | None = Field(default=None, min_length=1, description="角色负责人。")
    description: str | None = Field(default=None, description="角色说明。")
    enabled: int = Field(default=1, ge=0, le=1, description="是否启用（0/1）。")


class RoleUpdateRequest(PartialUpdateSchema):
    """角色局部更新请求。"""

    nullable_fields = frozenset({"owner", "description"})

    name: str | None = Field(default=None, min_length=1, description="角色名称。")
    code: str | None = Field(default=None, min_length=1, max_length=128, description="角色编码。")
    owner: str | None = Field(default=None, min_length=1, description="角色负责人。")
    description: str | None = Field(default=None, description="角色说明。")
    enabled: int | None = Field(default=None, ge=0, le=1, description="是否启用（0/1）。")


class AssociationReplaceRequest(BaseModel):
    """覆盖设置角色关联请求，空列表表示清空。"""

    ids: list[PositiveInt] = Field(default_factory=list, description="关联目标 ID 列表（菜单或权限点）。")


class BulkAssociationRequest(BaseModel):
    """批量绑定/解绑请求，作用于 角色 × 目标 的笛卡尔积。"""

    role_ids: list[PositiveInt] = Field(min_length=1, description="角色 ID 列表。")
    target_ids: list[PositiveInt] = Field(min_length=1, description="目标 ID 列表（菜单或权限点）。")
    action: BindAction = Field(description="bind 追加绑定，unbind 解除绑定。")
