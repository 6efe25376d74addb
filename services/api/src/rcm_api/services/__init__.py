"""服务层能力导出集合。"""

from rcm_api.services.associations import (
    bulk_update_role_menus,
    bulk_update_role_permissions,
    list_role_menu_ids,
    list_role_permission_ids,
    set_role_menus,
    set_role_permissions,
)
from rcm_api.services.hierarchy import ensure_menu_parent, ensure_permission_level, reorder_siblings, would_create_cycle
from rcm_api.services.menus import create_menu, delete_menu, list_menus, menu_tree, reorder_menus, update_menu
from rcm_api.services.permissions import (
    create_permission,
    delete_permission,
    list_permissions,
    permission_tree,
    reorder_permissions,
    update_permission,
)
from rcm_api.services.roles import create_role, delete_role, list_roles, update_role
from rcm_api.services.snapshot import export_snapshot, import_snapshot, parse_snapshot

__all__ = [
    "would_create_cycle",
    "ensure_menu_parent",
    "ensure_permission_level",
    "reorder_siblings",
    "list_menus",
    "menu_tree",
    "create_menu",
    "update_menu",
    "delete_menu",
    "reorder_menus",
    "list_permissions",
    "permission_tree",
    "create_permission",
    "update_permission",
    "delete_permission",
    "reorder_permissions",
    "list_roles",
    "create_role",
    "update_role",
    "delete_role",
    "list_role_menu_ids",
    "list_role_permission_ids",
    "set_role_menus",
    "set_role_permissions",
    "bulk_update_role_menus",
    "bulk_update_role_permissions",
    "export_snapshot",
    "import_snapshot",
    "parse_snapshot",
]
