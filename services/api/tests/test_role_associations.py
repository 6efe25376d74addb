import asyncio

import pytest

from rcm_api.db.store import Store
from rcm_api.errors import NotFoundError, ValidationFailed
from rcm_api.models.enums import BindAction, PermissionLevel
from rcm_api.schemas.menu import MenuCreateRequest
from rcm_api.schemas.permission import PermissionCreateRequest
from rcm_api.schemas.role import RoleCreateRequest, RoleUpdateRequest
from rcm_api.services import associations as association_service
from rcm_api.services import roles as role_service
from rcm_api.services.menus import create_menu
from rcm_api.services.permissions import create_permission


async def _roles(store: Store, *codes: str) -> list[int]:
    created = [await role_service.create_role(store, RoleCreateRequest(name=code, code=code)) for code in codes]
    return [role.id for role in created]


async def _menus(store: Store, *codes: str) -> list[int]:
    created = [await create_menu(store, MenuCreateRequest(name=code, code=code)) for code in codes]
    return [menu.id for menu in created]


def test_role_crud_and_list_order(store: Store):
    async def scenario():
        first = await role_service.create_role(
            store, RoleCreateRequest(name="Admin", code="admin", owner="ops", description="all")
        )
        await role_service.create_role(store, RoleCreateRequest(name="Guest", code="guest"))
        updated = await role_service.update_role(
            store, first.id, RoleUpdateRequest.model_validate({"owner": None, "enabled": 0})
        )
        listed = await role_service.list_roles(store)
        await role_service.delete_role(store, first.id)
        return updated, listed, await role_service.list_roles(store)

    updated, listed, remaining = asyncio.run(scenario())
    assert updated.owner is None and updated.enabled == 0 and updated.description == "all"
    assert [role.code for role in listed] == ["guest", "admin"]
    assert [role.code for role in remaining] == ["guest"]


def test_replace_all_sets_exact_target_list(store: Store):
    async def scenario():
        (role_id,) = await _roles(store, "admin")
        m1, m2, m3 = await _menus(store, "m1", "m2", "m3")
        await association_service.set_role_menus(store, role_id, [m1, m2])
        replaced = await association_service.set_role_menus(store, role_id, [m3, m2, m3])
        current = await association_service.list_role_menu_ids(store, role_id)
        cleared = await association_service.set_role_menus(store, role_id, [])
        return replaced, current, cleared, await association_service.list_role_menu_ids(store, role_id), (m2, m3)

    replaced, current, cleared, after_clear, (m2, m3) = asyncio.run(scenario())
    assert replaced.ids == [m3, m2]
    assert current == sorted([m2, m3])
    assert cleared.ids == []
    assert after_clear == []


def test_replace_all_rejects_unknown_targets_without_writing(store: Store):
    async def scenario():
        (role_id,) = await _roles(store, "admin")
        (m1,) = await _menus(store, "m1")
        await association_service.set_role_menus(store, role_id, [m1])
        with pytest.raises(ValidationFailed) as exc_info:
            await association_service.set_role_menus(store, role_id, [m1, 404])
        return exc_info.value, await association_service.list_role_menu_ids(store, role_id), m1

    error, current, m1 = asyncio.run(scenario())
    assert error.details["missing"] == [404]
    assert current == [m1]


def test_associations_of_missing_role_are_not_found(store: Store):
    with pytest.raises(NotFoundError, match="Role not found"):
        asyncio.run(association_service.list_role_permission_ids(store, 1))
    with pytest.raises(NotFoundError, match="Role not found"):
        asyncio.run(association_service.set_role_permissions(store, 1, []))


def test_bulk_bind_is_idempotent(store: Store):
    async def scenario():
        roles = await _roles(store, "r1", "r2")
        menus = await _menus(store, "m1", "m2", "m3")
        first = await association_service.bulk_update_role_menus(store, roles, menus, BindAction.BIND)
        second = await association_service.bulk_update_role_menus(store, roles, menus, BindAction.BIND)
        links = [await association_service.list_role_menu_ids(store, role_id) for role_id in roles]
        return first, second, links, menus

    first, second, links, menus = asyncio.run(scenario())
    assert first.inserted == 6 and first.deleted == 0
    assert second.inserted == 0
    assert links == [menus, menus]


def test_bulk_bind_counts_only_new_pairs(store: Store):
    async def scenario():
        roles = await _roles(store, "r1", "r2")
        menus = await _menus(store, "m1", "m2")
        await association_service.set_role_menus(store, roles[0], [menus[0]])
        return await association_service.bulk_update_role_menus(store, roles, menus, BindAction.BIND)

    assert asyncio.run(scenario()).inserted == 3


def test_bulk_bind_with_unknown_id_writes_nothing(store: Store):
    async def scenario():
        roles = await _roles(store, "r1")
        menus = await _menus(store, "m1")
        with pytest.raises(ValidationFailed, match="menu ids not found"):
            await association_service.bulk_update_role_menus(store, roles, [menus[0], 999], BindAction.BIND)
        return await association_service.list_role_menu_ids(store, roles[0])

    assert asyncio.run(scenario()) == []


def test_bulk_unbind_reports_deleted_rows_and_ignores_unknown_ids(store: Store):
    async def scenario():
        roles = await _roles(store, "r1", "r2")
        menus = await _menus(store, "m1", "m2")
        await association_service.bulk_update_role_menus(store, roles, menus, BindAction.BIND)
        result = await association_service.bulk_update_role_menus(
            store, [roles[0], 999], [menus[0], 888], BindAction.UNBIND
        )
        return result, [await association_service.list_role_menu_ids(store, role_id) for role_id in roles], menus

    result, links, menus = asyncio.run(scenario())
    assert result.deleted == 1 and result.inserted == 0
    assert links == [[menus[1]], menus]


def test_bulk_permission_bind(store: Store):
    async def scenario():
        roles = await _roles(store, "r1")
        permission = await create_permission(
            store, PermissionCreateRequest(level=PermissionLevel.CLASS, name="user", code="user")
        )
        result = await association_service.bulk_update_role_permissions(
            store, roles, [permission.id, permission.id], BindAction.BIND
        )
        return result, await association_service.list_role_permission_ids(store, roles[0]), permission.id

    result, links, permission_id = asyncio.run(scenario())
    assert result.inserted == 1
    assert result.target_ids == [permission_id]
    assert links == [permission_id]
