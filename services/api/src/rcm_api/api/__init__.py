"""路由模块导出集合。"""

from . import health, menus, permissions, roles, transfer

__all__ = [
    "health",
    "menus",
    "permissions",
    "roles",
    "transfer",
]
