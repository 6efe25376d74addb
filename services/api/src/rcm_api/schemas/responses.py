"""接口成功响应 `data` 字段结构定义。

说明：
1. 所有业务接口统一返回 `SuccessResponse[data=...]`。
2. 实体记录结构定义在 `schemas.records`，本文件只补充操作结果类结构。
3. 字段描述会直接用于 Swagger 展示，便于联调时理解含义。
"""

from pydantic import Field

from rcm_api.models.enums import BindAction
from rcm_api.schemas.common import BaseSchema
from rcm_api.schemas.records import MenuRecord, PermissionRecord


class HealthStatusData(BaseSchema):
    """健康检查返回结构。"""

    status: str = Field(description="健康状态值，常见为 ok 或 ready。")


class DeletedData(BaseSchema):
    """删除结果。"""

    id: int = Field(description="被删除记录 ID。")


class SortAssignmentData(BaseSchema):
    """重排后单个节点的排序值。"""

    id: int = Field(description="节点 ID。")
    sort: int = Field(description="写入的排序值。")


class MenuTreeNode(MenuRecord):
    """菜单树节点。"""

    children: list["MenuTreeNode"] = Field(default_factory=list, description="子菜单。")


class PermissionTreeNode(PermissionRecord):
    """权限树节点。"""

    children: list["PermissionTreeNode"] = Field(default_factory=list, description="method 级子权限。")


class AssociationReplaceData(BaseSchema):
    """覆盖设置角色关联结果。"""

    role_id: int = Field(description="角色 ID。")
    ids: list[int] = Field(description="当前生效的关联目标 ID 列表。")


class BulkAssociationData(BaseSchema):
    """批量绑定/解绑结果。"""

    action: BindAction = Field(description="执行的动作。")
    role_ids: list[int] = Field(description="参与的角色 ID。")
    target_ids: list[int] = Field(description="参与的目标 ID。")
    inserted: int = Field(description="实际新增的关联行数，已存在的不计入。")
    deleted: int = Field(description="实际删除的关联行数。")


class ImportCountsData(BaseSchema):
    """导入处理条数。"""

    menus: int = Field(default=0, description="处理的菜单条数。")
    permissions: int = Field(default=0, description="处理的权限点条数。")
    roles: int = Field(default=0, description="处理的角色条数。")
    role_menus: int = Field(default=0, description="写入的角色-菜单关联条数。")
    role_permissions: int = Field(default=0, description="写入的角色-权限关联条数。")


class ImportResultData(BaseSchema):
    """导入结果。"""

    imported: bool = Field(description="是否导入成功。")
    counts: ImportCountsData = Field(description="各实体处理条数。")
