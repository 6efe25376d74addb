"""权限点服务。

权限点固定为两级：class 级为根，method 级挂在 class 级之下。
创建与更新都按合并后的最终状态校验层级约束。
"""

from operator import attrgetter
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.db.store import Store, execute, query, query_one
from rcm_api.errors import NotFoundError
from rcm_api.models import Permission
from rcm_api.schemas.permission import PermissionCreateRequest, PermissionUpdateRequest
from rcm_api.schemas.records import PermissionRecord
from rcm_api.services.hierarchy import build_forest, ensure_permission_level, reorder_siblings

_PERMISSION = Permission.__table__


async def _load_permission(conn: AsyncConnection, permission_id: int) -> PermissionRecord:
    row = await query_one(conn, select(_PERMISSION).where(_PERMISSION.c.id == permission_id))
    if row is None:
        raise NotFoundError("Permission not found", details={"id": permission_id})
    return PermissionRecord.from_row(row)


async def list_permissions(store: Store) -> list[PermissionRecord]:
    """按 sort、id 升序返回全部权限点。"""
    async with store.connect() as conn:
        rows = await query(
            conn,
            select(_PERMISSION).order_by(_PERMISSION.c.sort.asc(), _PERMISSION.c.id.asc()),
        )
    return [PermissionRecord.from_row(row) for row in rows]


async def get_permission(store: Store, permission_id: int) -> PermissionRecord:
    async with store.connect() as conn:
        return await _load_permission(conn, permission_id)


async def permission_tree(store: Store) -> list[dict[str, Any]]:
    """返回 class → method 两级嵌套结构。"""
    forest = build_forest(
        await list_permissions(store),
        key=attrgetter("id"),
        parent_of=attrgetter("parent_id"),
        order=attrgetter("sort", "id"),
    )
    return forest.nest(lambda permission: permission.model_dump(mode="json"))


async def create_permission(store: Store, payload: PermissionCreateRequest) -> PermissionRecord:
    """新建权限点。"""

    async def _work(conn: AsyncConnection) -> PermissionRecord:
        await ensure_permission_level(conn, permission_id=None, level=payload.level, parent_id=payload.parent_id)
        result = await execute(conn, insert(_PERMISSION).values(**payload.model_dump(mode="json")))
        return await _load_permission(conn, result.last_insert_id)

    return await store.serializer.run_exclusive(_work)


async def update_permission(store: Store, permission_id: int, payload: PermissionUpdateRequest) -> PermissionRecord:
    """局部更新权限点。"""
    changes = payload.model_dump(mode="json", include=set(payload.changes()))

    async def _work(conn: AsyncConnection) -> PermissionRecord:
        current = await _load_permission(conn, permission_id)
        await ensure_permission_level(
            conn,
            permission_id=permission_id,
            level=changes.get("level", current.level),
            parent_id=changes["parent_id"] if "parent_id" in changes else current.parent_id,
        )
        await execute(
            conn,
            update(_PERMISSION).where(_PERMISSION.c.id == permission_id).values(**changes, updated_at=func.now()),
        )
        return await _load_permission(conn, permission_id)

    return await store.serializer.run_exclusive(_work)


async def delete_permission(store: Store, permission_id: int) -> dict[str, int]:
    """删除权限点，method 子节点与角色关联由外键级联删除。"""

    async def _work(conn: AsyncConnection) -> dict[str, int]:
        await _load_permission(conn, permission_id)
        await execute(conn, delete(_PERMISSION).where(_PERMISSION.c.id == permission_id))
        return {"id": permission_id}

    return await store.serializer.run_exclusive(_work)


async def reorder_permissions(store: Store, *, parent_id: int | None, ids: list[int]) -> list[dict[str, int]]:
    """重排同一父节点下的权限点。"""

    async def _work(conn: AsyncConnection) -> list[dict[str, int]]:
        return await reorder_siblings(conn, Permission, parent_id=parent_id, ids=ids)

    return await store.serializer.run_exclusive(_work)
