"""ORM 模型导出集合。"""

from rcm_api.models.menu import Menu
from rcm_api.models.permission import Permission
from rcm_api.models.role import Role, RoleMenu, RolePermission

__all__ = [
    "Menu",
    "Permission",
    "Role",
    "RoleMenu",
    "RolePermission",
]
