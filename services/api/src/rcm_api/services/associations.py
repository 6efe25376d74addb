"""角色授权关联服务。

两种写法：
1. 覆盖设置：删除角色现有全部关联后按输入重新插入，不做差异比对。
2. 批量绑定/解绑：作用于 角色 × 目标 的笛卡尔积，整个批次在一个事务内完成。
"""

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import product

from sqlalchemy import Table, delete, insert, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.db.store import Store, execute, query
from rcm_api.errors import ValidationFailed
from rcm_api.models import Menu, Permission, Role, RoleMenu, RolePermission
from rcm_api.models.enums import BindAction
from rcm_api.schemas.responses import AssociationReplaceData, BulkAssociationData
from rcm_api.services.roles import load_role


@dataclass(frozen=True)
class AssociationLink:
    """一张角色关联表的描述。"""

    table: Table
    target_column: str
    target_table: Table
    target_label: str


ROLE_MENU_LINK = AssociationLink(
    table=RoleMenu.__table__,
    target_column="menu_id",
    target_table=Menu.__table__,
    target_label="menu",
)
ROLE_PERMISSION_LINK = AssociationLink(
    table=RolePermission.__table__,
    target_column="permission_id",
    target_table=Permission.__table__,
    target_label="permission",
)


def _unique(ids: Iterable[int]) -> list[int]:
    """去重并保持原顺序。"""
    return list(dict.fromkeys(ids))


async def _ensure_ids_exist(conn: AsyncConnection, table: Table, ids: list[int], label: str) -> None:
    """写入前确认 ID 均存在，给出明确的缺失列表而不是外键错误。"""
    if not ids:
        return
    rows = await query(conn, select(table.c.id).where(table.c.id.in_(ids)))
    found = {row["id"] for row in rows}
    missing = [item for item in ids if item not in found]
    if missing:
        raise ValidationFailed(f"{label} ids not found", details={"missing": missing})


async def list_target_ids(store: Store, link: AssociationLink, role_id: int) -> list[int]:
    """返回角色已关联的目标 ID。"""
    column = link.table.c[link.target_column]
    async with store.connect() as conn:
        await load_role(conn, role_id)
        rows = await query(
            conn,
            select(column.label("target_id")).where(link.table.c.role_id == role_id).order_by(column.asc()),
        )
    return [row["target_id"] for row in rows]


async def set_associations(
    store: Store,
    link: AssociationLink,
    role_id: int,
    target_ids: Iterable[int],
) -> AssociationReplaceData:
    """覆盖设置角色关联，空列表表示清空。"""
    ids = _unique(target_ids)

    async def _work(conn: AsyncConnection) -> AssociationReplaceData:
        await load_role(conn, role_id)
        await _ensure_ids_exist(conn, link.target_table, ids, link.target_label)
        await execute(conn, delete(link.table).where(link.table.c.role_id == role_id))
        if ids:
            await conn.execute(
                insert(link.table),
                [{"role_id": role_id, link.target_column: target_id} for target_id in ids],
            )
        return AssociationReplaceData(role_id=role_id, ids=ids)

    return await store.serializer.run_exclusive(_work)


async def bulk_update(
    store: Store,
    link: AssociationLink,
    role_ids: Iterable[int],
    target_ids: Iterable[int],
    action: BindAction,
) -> BulkAssociationData:
    """批量绑定或解绑，返回实际新增/删除的行数。

    bind 时已存在的关联忽略（幂等），所有 ID 必须存在；
    unbind 只删除命中的关联，未知 ID 静默忽略。
    """
    roles = _unique(role_ids)
    targets = _unique(target_ids)

    async def _bind(conn: AsyncConnection) -> BulkAssociationData:
        await _ensure_ids_exist(conn, Role.__table__, roles, "role")
        await _ensure_ids_exist(conn, link.target_table, targets, link.target_label)
        inserted = 0
        for role_id, target_id in product(roles, targets):
            result = await execute(
                conn,
                sqlite_insert(link.table)
                .values({"role_id": role_id, link.target_column: target_id})
                .on_conflict_do_nothing(),
            )
            inserted += max(result.rows_affected, 0)
        return BulkAssociationData(action=action, role_ids=roles, target_ids=targets, inserted=inserted, deleted=0)

    async def _unbind(conn: AsyncConnection) -> BulkAssociationData:
        result = await execute(
            conn,
            delete(link.table).where(
                link.table.c.role_id.in_(roles),
                link.table.c[link.target_column].in_(targets),
            ),
        )
        deleted = max(result.rows_affected, 0)
        return BulkAssociationData(action=action, role_ids=roles, target_ids=targets, inserted=0, deleted=deleted)

    work = _bind if action == BindAction.BIND else _unbind
    return await store.serializer.run_exclusive(work)


async def list_role_menu_ids(store: Store, role_id: int) -> list[int]:
    return await list_target_ids(store, ROLE_MENU_LINK, role_id)


async def list_role_permission_ids(store: Store, role_id: int) -> list[int]:
    return await list_target_ids(store, ROLE_PERMISSION_LINK, role_id)


async def set_role_menus(store: Store, role_id: int, menu_ids: Iterable[int]) -> AssociationReplaceData:
    return await set_associations(store, ROLE_MENU_LINK, role_id, menu_ids)


async def set_role_permissions(store: Store, role_id: int, permission_ids: Iterable[int]) -> AssociationReplaceData:
    return await set_associations(store, ROLE_PERMISSION_LINK, role_id, permission_ids)


async def bulk_update_role_menus(
    store: Store,
    role_ids: Iterable[int],
    menu_ids: Iterable[int],
    action: BindAction,
) -> BulkAssociationData:
    return await bulk_update(store, ROLE_MENU_LINK, role_ids, menu_ids, action)


async def bulk_update_role_permissions(
    store: Store,
    role_ids: Iterable[int],
    permission_ids: Iterable[int],
    action: BindAction,
) -> BulkAssociationData:
    return await bulk_update(store, ROLE_PERMISSION_LINK, role_ids, permission_ids, action)
