"""菜单服务。"""

from operator import attrgetter
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.db.store import Store, execute, query, query_one
from rcm_api.errors import NotFoundError
from rcm_api.models import Menu
from rcm_api.schemas.menu import MenuCreateRequest, MenuUpdateRequest
from rcm_api.schemas.records import MenuRecord
from rcm_api.services.hierarchy import build_forest, ensure_menu_parent, reorder_siblings

_MENU = Menu.__table__


async def _load_menu(conn: AsyncConnection, menu_id: int) -> MenuRecord:
    row = await query_one(conn, select(_MENU).where(_MENU.c.id == menu_id))
    if row is None:
        raise NotFoundError("Menu not found", details={"id": menu_id})
    return MenuRecord.from_row(row)


async def list_menus(store: Store) -> list[MenuRecord]:
    """按 sort、id 升序返回全部菜单。"""
    async with store.connect() as conn:
        rows = await query(conn, select(_MENU).order_by(_MENU.c.sort.asc(), _MENU.c.id.asc()))
    return [MenuRecord.from_row(row) for row in rows]


async def get_menu(store: Store, menu_id: int) -> MenuRecord:
    async with store.connect() as conn:
        return await _load_menu(conn, menu_id)


async def menu_tree(store: Store) -> list[dict[str, Any]]:
    """返回嵌套菜单树。"""
    forest = build_forest(
        await list_menus(store),
        key=attrgetter("id"),
        parent_of=attrgetter("parent_id"),
        order=attrgetter("sort", "id"),
    )
    return forest.nest(lambda menu: menu.model_dump(mode="json"))


async def create_menu(store: Store, payload: MenuCreateRequest) -> MenuRecord:
    """新建菜单，父菜单必须存在。"""

    async def _work(conn: AsyncConnection) -> MenuRecord:
        await ensure_menu_parent(conn, menu_id=None, parent_id=payload.parent_id)
        result = await execute(conn, insert(_MENU).values(**payload.model_dump()))
        return await _load_menu(conn, result.last_insert_id)

    return await store.serializer.run_exclusive(_work)


async def update_menu(store: Store, menu_id: int, payload: MenuUpdateRequest) -> MenuRecord:
    """局部更新菜单；变更父菜单时先拒绝自引用，再沿祖先链检查成环。"""
    changes = payload.changes()

    async def _work(conn: AsyncConnection) -> MenuRecord:
        await _load_menu(conn, menu_id)
        if "parent_id" in changes:
            await ensure_menu_parent(conn, menu_id=menu_id, parent_id=changes["parent_id"])
        await execute(
            conn,
            update(_MENU).where(_MENU.c.id == menu_id).values(**changes, updated_at=func.now()),
        )
        return await _load_menu(conn, menu_id)

    return await store.serializer.run_exclusive(_work)


async def delete_menu(store: Store, menu_id: int) -> dict[str, int]:
    """删除菜单，子菜单与角色关联由外键级联删除。"""

    async def _work(conn: AsyncConnection) -> dict[str, int]:
        await _load_menu(conn, menu_id)
        await execute(conn, delete(_MENU).where(_MENU.c.id == menu_id))
        return {"id": menu_id}

    return await store.serializer.run_exclusive(_work)


async def reorder_menus(store: Store, *, parent_id: int | None, ids: list[int]) -> list[dict[str, int]]:
    """重排同一父菜单下的子菜单。"""

    async def _work(conn: AsyncConnection) -> list[dict[str, int]]:
        return await reorder_siblings(conn, Menu, parent_id=parent_id, ids=ids)

    return await store.serializer.run_exclusive(_work)
