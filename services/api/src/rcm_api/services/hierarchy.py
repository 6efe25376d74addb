"""层级完整性校验。

菜单为任意深度森林，需要向上遍历祖先链防止成环；
权限点为固定两级结构，只做静态的层级/父节点校验。
所有校验都在调用方的事务连接上执行，校验失败时事务尚未写入任何行。
"""

from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.db.store import execute, query, query_one
from rcm_api.errors import ValidationFailed
from rcm_api.models import Menu, Permission
from rcm_api.models.enums import PermissionLevel

# 重排时相邻节点的排序步长，留出手工插入的间隔。
SORT_STEP = 10

TreeModel = type[Menu] | type[Permission]


async def would_create_cycle(
    conn: AsyncConnection,
    model: TreeModel,
    node_id: int,
    proposed_parent_id: int | None,
) -> bool:
    """判断把 node_id 挂到 proposed_parent_id 之下是否会成环。

    从候选父节点沿 parent_id 向上走：走到 node_id 或重复访问（已有脏数据）即成环，
    走到根即安全。复杂度为树深度。
    """
    seen: set[int] = set()
    cursor = proposed_parent_id
    while cursor is not None:
        if cursor == node_id or cursor in seen:
            return True
        seen.add(cursor)
        row = await query_one(conn, select(model.parent_id).where(model.id == cursor))
        if row is None:
            return False
        cursor = row["parent_id"]
    return False


async def ensure_menu_parent(conn: AsyncConnection, *, menu_id: int | None, parent_id: int | None) -> None:
    """校验菜单父节点：不能是自身、必须存在、不能是自身后代。

    menu_id 为空表示新建节点，新节点不可能是任何节点的祖先，跳过成环检查。
    """
    if parent_id is None:
        return
    if menu_id is not None and parent_id == menu_id:
        raise ValidationFailed("parentId cannot be self", details={"id": menu_id})
    parent = await query_one(conn, select(Menu.id).where(Menu.id == parent_id))
    if parent is None:
        raise ValidationFailed("Parent menu not found", details={"parent_id": parent_id})
    if menu_id is not None and await would_create_cycle(conn, Menu, menu_id, parent_id):
        raise ValidationFailed(
            "parentId would create a cycle",
            details={"id": menu_id, "parent_id": parent_id},
        )


def permission_level_violation(
    *,
    permission_id: int | None,
    level: PermissionLevel | str,
    parent_id: int | None,
    parent_level: str | None,
) -> str | None:
    """按两级结构规则检查单个权限点，返回违规说明，合法时返回 None。

    parent_level 为父节点的层级，父节点不存在时传 None。
    """
    if level == PermissionLevel.CLASS:
        return "class permission must not have parentId" if parent_id is not None else None
    if level != PermissionLevel.METHOD:
        return f"unknown permission level: {level}"
    if parent_id is None:
        return "method permission must have parentId"
    if permission_id is not None and parent_id == permission_id:
        return "parentId cannot be self"
    if parent_level is None:
        return "Parent permission not found"
    if parent_level != PermissionLevel.CLASS:
        return "method parent must be class level"
    return None


async def ensure_permission_level(
    conn: AsyncConnection,
    *,
    permission_id: int | None,
    level: PermissionLevel | str,
    parent_id: int | None,
) -> None:
    """校验权限点两级结构。

    1. class 级不能有父节点。
    2. method 级必须有父节点，且父节点不能是自身、必须存在并且是 class 级。
    3. 已有子节点的权限点不能降为 method 级。
    """
    parent_level = None
    if parent_id is not None and parent_id != permission_id:
        parent = await query_one(conn, select(Permission.level).where(Permission.id == parent_id))
        parent_level = parent["level"] if parent is not None else None
    violation = permission_level_violation(
        permission_id=permission_id,
        level=level,
        parent_id=parent_id,
        parent_level=parent_level,
    )
    if violation:
        raise ValidationFailed(violation, details={"id": permission_id, "parent_id": parent_id})

    if level == PermissionLevel.METHOD and permission_id is not None:
        children = await query_one(
            conn,
            select(func.count().label("total")).select_from(Permission).where(Permission.parent_id == permission_id),
        )
        if children is not None and children["total"]:
            raise ValidationFailed(
                "permission with children must stay class level",
                details={"id": permission_id, "children": children["total"]},
            )


async def reorder_siblings(
    conn: AsyncConnection,
    model: TreeModel,
    *,
    parent_id: int | None,
    ids: Sequence[int],
) -> list[dict[str, int]]:
    """按给定顺序重排同级节点，sort 依次写为 10、20、30……

    要求：ID 不重复、全部存在、当前父节点都等于目标父节点（重排不允许顺带移动层级）。
    """
    duplicates = sorted(item for item, count in Counter(ids).items() if count > 1)
    if duplicates:
        raise ValidationFailed("ids must be unique", details={"duplicates": duplicates})
    if not ids:
        return []

    rows = await query(conn, select(model.id, model.parent_id).where(model.id.in_(list(ids))))
    current_parent = {row["id"]: row["parent_id"] for row in rows}
    missing = [item for item in ids if item not in current_parent]
    if missing:
        raise ValidationFailed("ids not found", details={"missing": missing})
    mismatched = [item for item in ids if current_parent[item] != parent_id]
    if mismatched:
        raise ValidationFailed(
            "ids must already belong to the target parent",
            details={"parent_id": parent_id, "mismatched": mismatched},
        )

    table = model.__table__
    result: list[dict[str, int]] = []
    for index, item in enumerate(ids, start=1):
        sort_value = index * SORT_STEP
        await execute(conn, update(table).where(table.c.id == item).values(sort=sort_value))
        result.append({"id": item, "sort": sort_value})
    return result


N = TypeVar("N")


@dataclass
class Forest(Generic[N]):
    """以 ID 为索引的节点池，父子关系单独存放在索引表中。"""

    nodes: dict[int, N] = field(default_factory=dict)
    children: dict[int | None, list[int]] = field(default_factory=dict)

    @property
    def roots(self) -> list[int]:
        return self.children.get(None, [])

    def nest(self, render: Callable[[N], dict[str, Any]], node_id: int | None = None) -> list[dict[str, Any]]:
        """展开为嵌套结构（每个节点带 children 列表）。"""
        output = []
        for child_id in self.children.get(node_id, []):
            item = render(self.nodes[child_id])
            item["children"] = self.nest(render, child_id)
            output.append(item)
        return output


def build_forest(
    records: Iterable[N],
    *,
    key: Callable[[N], int],
    parent_of: Callable[[N], int | None],
    order: Callable[[N], Any],
) -> Forest[N]:
    """由扁平记录构建森林。

    父节点缺失、指向自身或处于环上的节点都作为根节点展示，保证任何数据都能渲染。
    """
    forest: Forest[N] = Forest()
    for record in records:
        forest.nodes[key(record)] = record

    def _creates_cycle(child_id: int, start: int) -> bool:
        seen: set[int] = set()
        cursor: int | None = start
        while cursor is not None and cursor in forest.nodes:
            if cursor == child_id or cursor in seen:
                return True
            seen.add(cursor)
            cursor = parent_of(forest.nodes[cursor])
        return False

    for node_id, record in forest.nodes.items():
        parent_id = parent_of(record)
        attachable = (
            parent_id is not None
            and parent_id != node_id
            and parent_id in forest.nodes
            and not _creates_cycle(node_id, parent_id)
        )
        forest.children.setdefault(parent_id if attachable else None, []).append(node_id)

    for siblings in forest.children.values():
        siblings.sort(key=lambda item: order(forest.nodes[item]))
    return forest
