import asyncio
import json

import pytest

from rcm_api.db.store import Store
from rcm_api.errors import ValidationFailed
from rcm_api.models.enums import PermissionLevel
from rcm_api.schemas.menu import MenuCreateRequest
from rcm_api.schemas.permission import PermissionCreateRequest
from rcm_api.schemas.role import RoleCreateRequest
from rcm_api.schemas.snapshot import SnapshotDocument
from rcm_api.services import associations as association_service
from rcm_api.services.menus import create_menu, list_menus
from rcm_api.services.permissions import create_permission, list_permissions
from rcm_api.services.roles import create_role, list_roles
from rcm_api.services.snapshot import export_snapshot, import_snapshot, parse_snapshot


async def _seed(store: Store) -> None:
    """两级菜单、两级权限点、两个角色及其关联。"""
    system = await create_menu(store, MenuCreateRequest(name="System", code="system", sort=20))
    users = await create_menu(store, MenuCreateRequest(name="Users", code="system.users", parent_id=system.id))
    home = await create_menu(store, MenuCreateRequest(name="Home", code="home", path="/", sort=10))
    user_class = await create_permission(
        store, PermissionCreateRequest(level=PermissionLevel.CLASS, name="User", code="user", description="users")
    )
    user_list = await create_permission(
        store,
        PermissionCreateRequest(level=PermissionLevel.METHOD, name="List", code="user:list", parent_id=user_class.id),
    )
    admin = await create_role(store, RoleCreateRequest(name="Admin", code="admin", owner="ops"))
    guest = await create_role(store, RoleCreateRequest(name="Guest", code="guest"))
    await association_service.set_role_menus(store, admin.id, [system.id, users.id, home.id])
    await association_service.set_role_menus(store, guest.id, [home.id])
    await association_service.set_role_permissions(store, admin.id, [user_class.id, user_list.id])


async def _shape(store: Store) -> dict:
    """与主键无关的配置形态，用于比较两个库是否同构。"""
    menus = await list_menus(store)
    permissions = await list_permissions(store)
    roles = await list_roles(store)
    menu_codes = {menu.id: menu.code for menu in menus}
    permission_codes = {permission.id: permission.code for permission in permissions}
    role_menus = set()
    role_permissions = set()
    for role in roles:
        for menu_id in await association_service.list_role_menu_ids(store, role.id):
            role_menus.add((role.code, menu_codes[menu_id]))
        for permission_id in await association_service.list_role_permission_ids(store, role.id):
            role_permissions.add((role.code, permission_codes[permission_id]))
    return {
        "menus": {
            menu.code: (menu_codes.get(menu.parent_id), menu.name, menu.path, menu.sort, menu.enabled) for menu in menus
        },
        "permissions": {
            permission.code: (permission_codes.get(permission.parent_id), permission.level, permission.description)
            for permission in permissions
        },
        "roles": {role.code: (role.name, role.owner) for role in roles},
        "role_menus": role_menus,
        "role_permissions": role_permissions,
    }


def test_export_uses_codes_and_documented_order(store: Store):
    async def scenario():
        await _seed(store)
        return (await export_snapshot(store, version=3)).to_wire()

    document = asyncio.run(scenario())
    assert document["version"] == 3
    assert document["exportedAt"]
    assert [menu["code"] for menu in document["menus"]] == ["system.users", "home", "system"]
    assert document["menus"][0]["parentCode"] == "system"
    assert document["menus"][1]["parentCode"] is None
    assert "id" not in document["menus"][0]
    assert document["permissions"][1] == {
        "code": "user:list",
        "parentCode": "user",
        "level": "method",
        "name": "List",
        "path": None,
        "icon": None,
        "description": None,
        "sort": 0,
        "enabled": 1,
    }
    assert [role["code"] for role in document["roles"]] == ["admin", "guest"]
    assert document["roleMenus"] == [
        {"roleCode": "admin", "menuCode": "home"},
        {"roleCode": "admin", "menuCode": "system"},
        {"roleCode": "admin", "menuCode": "system.users"},
        {"roleCode": "guest", "menuCode": "home"},
    ]
    assert document["rolePermissions"] == [
        {"roleCode": "admin", "permissionCode": "user"},
        {"roleCode": "admin", "permissionCode": "user:list"},
    ]


def test_round_trip_into_empty_store_is_isomorphic(store: Store, tmp_path):
    target = Store(f"sqlite+aiosqlite:///{tmp_path / 'target.db'}")

    async def scenario():
        await _seed(store)
        wire = (await export_snapshot(store)).to_wire()
        # 目标库预先占用主键，确保导入后数字 ID 与源库不同。
        await create_menu(target, MenuCreateRequest(name="Filler", code="filler"))
        counts = await import_snapshot(target, SnapshotDocument.model_validate(json.loads(json.dumps(wire))))
        source_shape = await _shape(store)
        target_shape = await _shape(target)
        await target.dispose()
        return counts, source_shape, target_shape

    counts, source_shape, target_shape = asyncio.run(scenario())
    assert counts.model_dump() == {"menus": 3, "permissions": 2, "roles": 2, "role_menus": 4, "role_permissions": 2}
    assert target_shape["menus"].pop("filler") == (None, "Filler", None, 0, 1)
    assert target_shape == source_shape


def test_import_resolves_parent_regardless_of_input_order(store: Store):
    document = parse_snapshot(
        {"menus": [{"code": "child", "name": "Child", "parentCode": "root"}, {"code": "root", "name": "Root"}]}
    )

    async def scenario():
        await import_snapshot(store, document)
        return await list_menus(store)

    menus = {menu.code: menu for menu in asyncio.run(scenario())}
    assert set(menus) == {"root", "child"}
    assert menus["root"].parent_id is None
    assert menus["child"].parent_id == menus["root"].id


def test_import_updates_existing_codes_and_treats_unknown_parent_as_root(store: Store):
    async def scenario():
        root = await create_menu(store, MenuCreateRequest(name="Old", code="root", path="/old"))
        await create_menu(store, MenuCreateRequest(name="Child", code="child", parent_id=root.id))
        await import_snapshot(
            store,
            parse_snapshot(
                {
                    "menus": [
                        {"code": "root", "name": "New", "sort": 5},
                        {"code": "child", "name": "Child", "parentCode": "ghost"},
                    ]
                }
            ),
        )
        return await list_menus(store), root.id

    menus, root_id = asyncio.run(scenario())
    by_code = {menu.code: menu for menu in menus}
    assert len(menus) == 2
    assert by_code["root"].id == root_id
    assert by_code["root"].name == "New" and by_code["root"].sort == 5 and by_code["root"].path is None
    assert by_code["child"].parent_id is None


def test_import_replaces_associations_only_for_roles_in_document(store: Store):
    async def scenario():
        await _seed(store)
        await import_snapshot(
            store,
            parse_snapshot(
                {
                    "roleMenus": [
                        {"roleCode": "admin", "menuCode": "home"},
                        {"roleCode": "admin", "menuCode": "home"},
                        {"roleCode": "admin", "menuCode": "missing"},
                        {"roleCode": "nobody", "menuCode": "home"},
                    ]
                }
            ),
        )
        return await _shape(store)

    shape = asyncio.run(scenario())
    assert shape["role_menus"] == {("admin", "home"), ("guest", "home")}
    assert shape["role_permissions"] == {("admin", "user"), ("admin", "user:list")}


def test_invalid_permission_rolls_back_entire_import(store: Store):
    document = parse_snapshot(
        {
            "menus": [{"code": "reports", "name": "Reports"}],
            "roles": [{"code": "auditor", "name": "Auditor"}],
            "permissions": [
                {"code": "report", "name": "Report", "level": "class"},
                {"code": "report:view", "name": "View", "level": "method", "parentCode": "report"},
                {"code": "report:deep", "name": "Deep", "level": "method", "parentCode": "report:view"},
            ],
        }
    )

    async def scenario():
        with pytest.raises(ValidationFailed, match="level rules") as exc_info:
            await import_snapshot(store, document)
        return exc_info.value, await list_menus(store), await list_permissions(store), await list_roles(store)

    error, menus, permissions, roles = asyncio.run(scenario())
    assert error.details["violations"][0]["code"] == "report:deep"
    assert menus == [] and permissions == [] and roles == []


def test_method_permission_with_unknown_parent_is_rejected(store: Store):
    document = parse_snapshot({"permissions": [{"code": "lonely", "name": "Lonely", "level": "method"}]})

    with pytest.raises(ValidationFailed):
        asyncio.run(import_snapshot(store, document))


def test_menu_cycle_in_document_rolls_back(store: Store):
    document = parse_snapshot(
        {
            "menus": [
                {"code": "a", "name": "A", "parentCode": "b"},
                {"code": "b", "name": "B", "parentCode": "a"},
            ]
        }
    )

    async def scenario():
        with pytest.raises(ValidationFailed, match="cycle"):
            await import_snapshot(store, document)
        return await list_menus(store)

    assert asyncio.run(scenario()) == []


def test_partial_document_with_roles_only(store: Store):
    async def scenario():
        counts = await import_snapshot(store, parse_snapshot({"roles": [{"code": "ops", "name": "Ops"}]}))
        return counts, await list_roles(store)

    counts, roles = asyncio.run(scenario())
    assert counts.roles == 1 and counts.menus == 0
    assert [role.code for role in roles] == ["ops"]


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        (b"{not json", "Invalid JSON file"),
        (b"   ", "Missing import payload"),
        ({}, "Missing import payload"),
        (None, "Missing import payload"),
        ({"menus": [{"code": "x"}]}, "Invalid import payload"),
        ({"permissions": [{"code": "x", "name": "X", "level": "field"}]}, "Invalid import payload"),
        ([1, 2], "Invalid import payload"),
    ],
)
def test_parse_snapshot_rejects_bad_payloads(raw, message):
    with pytest.raises(ValidationFailed, match=message):
        parse_snapshot(raw)


def test_parse_snapshot_enforces_size_limit():
    with pytest.raises(ValidationFailed, match="too large"):
        parse_snapshot(b'{"menus": []}', max_bytes=4)


def test_parse_snapshot_ignores_legacy_id_fields():
    document = parse_snapshot(json.dumps({"version": 1, "menus": [{"id": 7, "code": "m", "name": "M", "parentId": 3}]}))
    assert document.menus[0].code == "m"
    assert document.menus[0].parent_code is None
