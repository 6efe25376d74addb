"""角色服务。"""

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.db.store import Store, execute, query, query_one
from rcm_api.errors import NotFoundError
from rcm_api.models import Role
from rcm_api.schemas.records import RoleRecord
from rcm_api.schemas.role import RoleCreateRequest, RoleUpdateRequest

_ROLE = Role.__table__


async def load_role(conn: AsyncConnection, role_id: int) -> RoleRecord:
    """读取角色，不存在时抛出 NotFoundError。"""
    row = await query_one(conn, select(_ROLE).where(_ROLE.c.id == role_id))
    if row is None:
        raise NotFoundError("Role not found", details={"id": role_id})
    return RoleRecord.from_row(row)


async def list_roles(store: Store) -> list[RoleRecord]:
    """按创建先后倒序返回全部角色。"""
    async with store.connect() as conn:
        rows = await query(conn, select(_ROLE).order_by(_ROLE.c.id.desc()))
    return [RoleRecord.from_row(row) for row in rows]


async def get_role(store: Store, role_id: int) -> RoleRecord:
    async with store.connect() as conn:
        return await load_role(conn, role_id)


async def create_role(store: Store, payload: RoleCreateRequest) -> RoleRecord:
    async def _work(conn: AsyncConnection) -> RoleRecord:
        result = await execute(conn, insert(_ROLE).values(**payload.model_dump()))
        return await load_role(conn, result.last_insert_id)

    return await store.serializer.run_exclusive(_work)


async def update_role(store: Store, role_id: int, payload: RoleUpdateRequest) -> RoleRecord:
    changes = payload.changes()

    async def _work(conn: AsyncConnection) -> RoleRecord:
        await load_role(conn, role_id)
        await execute(conn, update(_ROLE).where(_ROLE.c.id == role_id).values(**changes, updated_at=func.now()))
        return await load_role(conn, role_id)

    return await store.serializer.run_exclusive(_work)


async def delete_role(store: Store, role_id: int) -> dict[str, int]:
    """删除角色，角色的菜单与权限关联由外键级联删除。"""

    async def _work(conn: AsyncConnection) -> dict[str, int]:
        await load_role(conn, role_id)
        await execute(conn, delete(_ROLE).where(_ROLE.c.id == role_id))
        return {"id": role_id}

    return await store.serializer.run_exclusive(_work)
