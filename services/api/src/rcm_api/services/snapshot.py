"""配置快照导出与导入。

导出：所有父节点引用与关联端点都替换为 `code`，文档可在主键不同的库之间迁移。

导入（整体一个事务，任何一步失败全部回滚）:
1) 菜单按 code 插入或更新，父节点先一律置空。
2) 重新读取 code→id 映射，按 parentCode 回填父节点；未知 parentCode 视为无父节点。
3) 权限点重复 1)、2)，回填后校验两级结构。
4) 角色按 code 插入或更新。
5) 读取角色、菜单、权限点最新 code→id 映射。
6) 角色-菜单关联：输入中出现的角色先清空其全部菜单关联，再写入两端都能解析的关联。
7) 角色-权限关联同上。
"""

import json
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.db.store import Store, execute, query
from rcm_api.errors import ValidationFailed
from rcm_api.models import Menu, Permission, Role, RoleMenu, RolePermission
from rcm_api.schemas.responses import ImportCountsData
from rcm_api.schemas.snapshot import (
    SnapshotDocument,
    SnapshotMenu,
    SnapshotPermission,
    SnapshotRole,
    SnapshotRoleMenu,
    SnapshotRolePermission,
)
from rcm_api.services.associations import ROLE_MENU_LINK, ROLE_PERMISSION_LINK, AssociationLink
from rcm_api.services.hierarchy import permission_level_violation, would_create_cycle

logger = logging.getLogger("rcm_api.snapshot")

_MENU = Menu.__table__
_PERMISSION = Permission.__table__
_ROLE = Role.__table__
_ROLE_MENU = RoleMenu.__table__
_ROLE_PERMISSION = RolePermission.__table__


async def export_snapshot(store: Store, *, version: int = 1) -> SnapshotDocument:
    """导出完整配置快照。"""
    parent_menu = _MENU.alias("parent_menu")
    parent_permission = _PERMISSION.alias("parent_permission")
    async with store.connect() as conn:
        menus = await query(
            conn,
            select(
                _MENU.c.code,
                parent_menu.c.code.label("parent_code"),
                _MENU.c.name,
                _MENU.c.path,
                _MENU.c.icon,
                _MENU.c.sort,
                _MENU.c.enabled,
            )
            .select_from(_MENU.outerjoin(parent_menu, parent_menu.c.id == _MENU.c.parent_id))
            .order_by(_MENU.c.sort.asc(), _MENU.c.id.asc()),
        )
        permissions = await query(
            conn,
            select(
                _PERMISSION.c.code,
                parent_permission.c.code.label("parent_code"),
                _PERMISSION.c.level,
                _PERMISSION.c.name,
                _PERMISSION.c.path,
                _PERMISSION.c.icon,
                _PERMISSION.c.description,
                _PERMISSION.c.sort,
                _PERMISSION.c.enabled,
            )
            .select_from(
                _PERMISSION.outerjoin(parent_permission, parent_permission.c.id == _PERMISSION.c.parent_id)
            )
            .order_by(_PERMISSION.c.sort.asc(), _PERMISSION.c.id.asc()),
        )
        roles = await query(
            conn,
            select(_ROLE.c.code, _ROLE.c.name, _ROLE.c.owner, _ROLE.c.description, _ROLE.c.enabled).order_by(
                _ROLE.c.id.asc()
            ),
        )
        role_menus = await query(
            conn,
            select(_ROLE.c.code.label("role_code"), _MENU.c.code.label("menu_code"))
            .select_from(
                _ROLE_MENU.join(_ROLE, _ROLE.c.id == _ROLE_MENU.c.role_id).join(
                    _MENU, _MENU.c.id == _ROLE_MENU.c.menu_id
                )
            )
            .order_by(_ROLE.c.code.asc(), _MENU.c.code.asc()),
        )
        role_permissions = await query(
            conn,
            select(_ROLE.c.code.label("role_code"), _PERMISSION.c.code.label("permission_code"))
            .select_from(
                _ROLE_PERMISSION.join(_ROLE, _ROLE.c.id == _ROLE_PERMISSION.c.role_id).join(
                    _PERMISSION, _PERMISSION.c.id == _ROLE_PERMISSION.c.permission_id
                )
            )
            .order_by(_ROLE.c.code.asc(), _PERMISSION.c.code.asc()),
        )

    document = SnapshotDocument(
        version=version,
        exported_at=datetime.now(timezone.utc),
        menus=[SnapshotMenu.model_validate(dict(row)) for row in menus],
        permissions=[SnapshotPermission.model_validate(dict(row)) for row in permissions],
        roles=[SnapshotRole.model_validate(dict(row)) for row in roles],
        role_menus=[SnapshotRoleMenu.model_validate(dict(row)) for row in role_menus],
        role_permissions=[SnapshotRolePermission.model_validate(dict(row)) for row in role_permissions],
    )
    logger.info(
        "snapshot exported menus=%s permissions=%s roles=%s role_menus=%s role_permissions=%s",
        len(menus),
        len(permissions),
        len(roles),
        len(role_menus),
        len(role_permissions),
    )
    return document


def parse_snapshot(raw: bytes | str | dict | None, *, max_bytes: int | None = None) -> SnapshotDocument:
    """把请求体或上传文件内容解析为快照文档。"""
    if isinstance(raw, (bytes, str)):
        if max_bytes is not None and len(raw) > max_bytes:
            raise ValidationFailed("Import payload too large", details={"max_bytes": max_bytes})
        if not raw.strip():
            raise ValidationFailed("Missing import payload")
        try:
            raw = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationFailed("Invalid JSON file", details={"reason": str(exc)}) from exc
    if raw is None or raw == {}:
        raise ValidationFailed("Missing import payload")
    try:
        return SnapshotDocument.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailed(
            "Invalid import payload",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc


async def _code_map(conn: AsyncConnection, table: Table) -> dict[str, int]:
    rows = await query(conn, select(table.c.id, table.c.code))
    return {row["code"]: row["id"] for row in rows}


async def _upsert_menus(conn: AsyncConnection, menus: Sequence[SnapshotMenu]) -> None:
    for menu in menus:
        statement = sqlite_insert(_MENU).values(
            parent_id=None,
            name=menu.name,
            code=menu.code,
            path=menu.path,
            icon=menu.icon,
            sort=menu.sort,
            enabled=menu.enabled,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[_MENU.c.code],
            set_={
                "name": statement.excluded.name,
                "path": statement.excluded.path,
                "icon": statement.excluded.icon,
                "sort": statement.excluded.sort,
                "enabled": statement.excluded.enabled,
                "updated_at": func.now(),
            },
        )
        await execute(conn, statement)


async def _upsert_permissions(conn: AsyncConnection, permissions: Sequence[SnapshotPermission]) -> None:
    for permission in permissions:
        statement = sqlite_insert(_PERMISSION).values(
            parent_id=None,
            level=permission.level.value,
            name=permission.name,
            code=permission.code,
            path=permission.path,
            icon=permission.icon,
            description=permission.description,
            sort=permission.sort,
            enabled=permission.enabled,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[_PERMISSION.c.code],
            set_={
                "level": statement.excluded.level,
                "name": statement.excluded.name,
                "path": statement.excluded.path,
                "icon": statement.excluded.icon,
                "description": statement.excluded.description,
                "sort": statement.excluded.sort,
                "enabled": statement.excluded.enabled,
                "updated_at": func.now(),
            },
        )
        await execute(conn, statement)


async def _upsert_roles(conn: AsyncConnection, roles: Sequence[SnapshotRole]) -> None:
    for role in roles:
        statement = sqlite_insert(_ROLE).values(
            name=role.name,
            code=role.code,
            owner=role.owner,
            description=role.description,
            enabled=role.enabled,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[_ROLE.c.code],
            set_={
                "name": statement.excluded.name,
                "owner": statement.excluded.owner,
                "description": statement.excluded.description,
                "enabled": statement.excluded.enabled,
                "updated_at": func.now(),
            },
        )
        await execute(conn, statement)


async def _relink_parents(
    conn: AsyncConnection,
    table: Table,
    items: Iterable[SnapshotMenu | SnapshotPermission],
) -> dict[str, int | None]:
    """第二遍：按 parentCode 回填父节点，返回 code→解析后的父节点 ID。"""
    ids = await _code_map(conn, table)
    resolved: dict[str, int | None] = {}
    for item in items:
        parent_id = ids.get(item.parent_code) if item.parent_code else None
        await execute(
            conn,
            update(table).where(table.c.code == item.code).values(parent_id=parent_id, updated_at=func.now()),
        )
        resolved[item.code] = parent_id
    return resolved


async def _check_menu_cycles(conn: AsyncConnection, parents: dict[str, int | None]) -> None:
    """回填后的菜单父子关系不能成环。"""
    ids = await _code_map(conn, _MENU)
    cyclic = [
        code
        for code, parent_id in parents.items()
        if parent_id is not None and await would_create_cycle(conn, Menu, ids[code], parent_id)
    ]
    if cyclic:
        raise ValidationFailed("Imported menus would create a cycle", details={"codes": sorted(cyclic)})


async def _check_permission_levels(conn: AsyncConnection, codes: set[str]) -> None:
    """回填后校验导入涉及的权限点（及其子节点）满足两级结构。"""
    parent = _PERMISSION.alias("parent_permission")
    rows = await query(
        conn,
        select(
            _PERMISSION.c.id,
            _PERMISSION.c.code,
            _PERMISSION.c.level,
            _PERMISSION.c.parent_id,
            parent.c.code.label("parent_code"),
            parent.c.level.label("parent_level"),
        ).select_from(_PERMISSION.outerjoin(parent, parent.c.id == _PERMISSION.c.parent_id)),
    )
    violations = []
    for row in rows:
        if row["code"] not in codes and row["parent_code"] not in codes:
            continue
        reason = permission_level_violation(
            permission_id=row["id"],
            level=row["level"],
            parent_id=row["parent_id"],
            parent_level=row["parent_level"],
        )
        if reason:
            violations.append({"code": row["code"], "reason": reason})
    if violations:
        raise ValidationFailed("Imported permissions violate level rules", details={"violations": violations})


async def _replace_role_links(
    conn: AsyncConnection,
    link: AssociationLink,
    pairs: Sequence[tuple[str, str]],
    role_ids: dict[str, int],
    target_ids: dict[str, int],
) -> int:
    """输入中出现的角色先清空该类关联再写入；无法解析的 code 静默跳过。返回写入条数。"""
    for role_code in dict.fromkeys(role_code for role_code, _ in pairs):
        role_id = role_ids.get(role_code)
        if role_id is None:
            continue
        await execute(conn, delete(link.table).where(link.table.c.role_id == role_id))

    written: set[tuple[int, int]] = set()
    for role_code, target_code in pairs:
        role_id = role_ids.get(role_code)
        target_id = target_ids.get(target_code)
        if role_id is None or target_id is None or (role_id, target_id) in written:
            continue
        await execute(conn, insert(link.table).values({"role_id": role_id, link.target_column: target_id}))
        written.add((role_id, target_id))
    return len(written)


async def import_snapshot(store: Store, document: SnapshotDocument) -> ImportCountsData:
    """按自然键把快照文档合并进当前数据，整体原子执行。"""

    async def _work(conn: AsyncConnection) -> ImportCountsData:
        counts = ImportCountsData()
        if document.menus:
            await _upsert_menus(conn, document.menus)
            parents = await _relink_parents(conn, _MENU, document.menus)
            await _check_menu_cycles(conn, parents)
            counts.menus = len(document.menus)

        if document.permissions:
            await _upsert_permissions(conn, document.permissions)
            await _relink_parents(conn, _PERMISSION, document.permissions)
            await _check_permission_levels(conn, {permission.code for permission in document.permissions})
            counts.permissions = len(document.permissions)

        if document.roles:
            await _upsert_roles(conn, document.roles)
            counts.roles = len(document.roles)

        role_ids = await _code_map(conn, _ROLE)
        menu_ids = await _code_map(conn, _MENU)
        permission_ids = await _code_map(conn, _PERMISSION)

        if document.role_menus:
            counts.role_menus = await _replace_role_links(
                conn,
                ROLE_MENU_LINK,
                [(item.role_code, item.menu_code) for item in document.role_menus],
                role_ids,
                menu_ids,
            )
        if document.role_permissions:
            counts.role_permissions = await _replace_role_links(
                conn,
                ROLE_PERMISSION_LINK,
                [(item.role_code, item.permission_code) for item in document.role_permissions],
                role_ids,
                permission_ids,
            )
        return counts

    counts = await store.serializer.run_exclusive(_work)
    logger.info("snapshot imported %s", counts.model_dump())
    return counts
