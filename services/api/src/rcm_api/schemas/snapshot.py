"""配置快照文档结构。

导出与导入共用同一结构，字段使用 camelCase 传输名；所有父节点与关联端点
都以 `code` 表达，便于在主键不同的库之间迁移。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rcm_api.models.enums import PermissionLevel


class SnapshotSchema(BaseModel):
    """快照基类：camelCase 传输名，忽略未知字段（兼容携带 id 的旧导出文件）。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class SnapshotMenu(SnapshotSchema):
    code: str = Field(min_length=1)
    parent_code: str | None = Field(default=None, min_length=1)
    name: str = Field(min_length=1)
    path: str | None = None
    icon: str | None = None
    sort: int = 0
    enabled: int = 1


class SnapshotPermission(SnapshotSchema):
    code: str = Field(min_length=1)
    parent_code: str | None = Field(default=None, min_length=1)
    level: PermissionLevel
    name: str = Field(min_length=1)
    path: str | None = None
    icon: str | None = None
    description: str | None = None
    sort: int = 0
    enabled: int = 1


class SnapshotRole(SnapshotSchema):
    code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    owner: str | None = Field(default=None, min_length=1)
    description: str | None = None
    enabled: int = 1


class SnapshotRoleMenu(SnapshotSchema):
    role_code: str = Field(min_length=1)
    menu_code: str = Field(min_length=1)


class SnapshotRolePermission(SnapshotSchema):
    role_code: str = Field(min_length=1)
    permission_code: str = Field(min_length=1)


class SnapshotDocument(SnapshotSchema):
    """完整配置快照。

    导入时各集合均可缺省，以支持只同步部分实体（例如仅角色）。
    """

    version: int | None = None
    exported_at: datetime | None = None
    menus: list[SnapshotMenu] | None = None
    permissions: list[SnapshotPermission] | None = None
    roles: list[SnapshotRole] | None = None
    role_menus: list[SnapshotRoleMenu] | None = None
    role_permissions: list[SnapshotRolePermission] | None = None

    def to_wire(self) -> dict:
        """转为可直接 JSON 序列化的传输结构。"""
        return self.model_dump(mode="json", by_alias=True)
