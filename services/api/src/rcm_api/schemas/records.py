"""实体记录结构。

存储层返回的行一律经由此处的结构映射后再向外传递，禁止未声明的字段。
"""

from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field

from rcm_api.models.enums import PermissionLevel


class RecordSchema(BaseModel):
    """记录基类，拒绝未声明字段并禁止修改。"""

    model_config = ConfigDict(from_attributes=True, extra="forbid", frozen=True)

    @classmethod
    def from_row(cls, row: Any) -> Self:
        """由查询行（字段名映射）构造记录。"""
        return cls.model_validate(dict(row))


class MenuRecord(RecordSchema):
    """菜单记录。"""

    id: int = Field(description="菜单 ID。")
    parent_id: int | None = Field(default=None, description="父菜单 ID，根节点为空。")
    name: str = Field(description="菜单名称。")
    code: str = Field(description="菜单编码（全局唯一）。")
    path: str | None = Field(default=None, description="前端路由路径。")
    icon: str | None = Field(default=None, description="图标标识。")
    sort: int = Field(description="同级排序值。")
    enabled: int = Field(description="是否启用（0/1）。")
    created_at: datetime = Field(description="创建时间。")
    updated_at: datetime = Field(description="更新时间。")


class PermissionRecord(RecordSchema):
    """权限点记录。"""

    id: int = Field(description="权限点 ID。")
    parent_id: int | None = Field(default=None, description="所属 class 级权限 ID。")
    level: PermissionLevel = Field(description="权限层级（class/method）。")
    name: str = Field(description="权限名称。")
    code: str = Field(description="权限编码（全局唯一）。")
    path: str | None = Field(default=None, description="接口路径。")
    icon: str | None = Field(default=None, description="图标标识。")
    description: str | None = Field(default=None, description="权限说明。")
    sort: int = Field(description="同级排序值。")
    enabled: int = Field(description="是否启用（0/1）。")
    created_at: datetime = Field(description="创建时间。")
    updated_at: datetime = Field(description="更新时间。")


class RoleRecord(RecordSchema):
    """角色记录。"""

    id: int = Field(description="角色 ID。")
    name: str = Field(description="角色名称。")
    code: str = Field(description="角色编码（全局唯一）。")
    owner: str | None = Field(default=None, description="角色负责人。")
    description: str | None = Field(default=None, description="角色说明。")
    enabled: int = Field(description="是否启用（0/1）。")
    created_at: datetime = Field(description="创建时间。")
    updated_at: datetime = Field(description="更新时间。")
