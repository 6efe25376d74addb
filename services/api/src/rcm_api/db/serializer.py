"""写入串行器。

同一进程内任一时刻至多只有一个写事务处于打开状态：
1. 调用方按到达顺序（FIFO）排队，前一个事务提交或回滚后下一个才开始。
2. 每个工作单元包裹在 `BEGIN IMMEDIATE` / `COMMIT` 中，失败时 `ROLLBACK` 并抛出原始错误。
3. 不设超时：已进入的工作单元若一直不结束，后续写请求会一直等待。
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection

from rcm_api.errors import ConfigError, ConflictError, TransientStoreError

if TYPE_CHECKING:
    from rcm_api.db.store import Store

logger = logging.getLogger("rcm_api.serializer")

T = TypeVar("T")

UnitOfWork = Callable[[AsyncConnection], Awaitable[T]]


def _driver_message(exc: DBAPIError) -> str:
    """提取驱动原始错误信息。"""
    return str(exc.orig) if exc.orig is not None else str(exc)


def translate_store_error(exc: BaseException) -> BaseException:
    """将存储层异常映射为带分类的领域错误，其余异常原样返回。"""
    if isinstance(exc, ConfigError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError(_driver_message(exc), details={"statement": exc.statement})
    if isinstance(exc, DBAPIError):
        return TransientStoreError(_driver_message(exc), details={"statement": exc.statement})
    return exc


class WriteSerializer:
    """进程级写事务队列，生命周期与所属存储句柄一致。"""

    def __init__(self, store: Store) -> None:
        self._store = store
        # asyncio.Lock 按等待顺序唤醒，天然满足 FIFO。
        self._lock = asyncio.Lock()
        self._waiting = 0

    @property
    def busy(self) -> bool:
        """当前是否有事务正在执行。"""
        return self._lock.locked()

    @property
    def waiting(self) -> int:
        """排队等待中的工作单元数量（不含正在执行的）。"""
        return self._waiting

    async def run_exclusive(self, work: UnitOfWork[T]) -> T:
        """排队并以独占写事务执行工作单元，返回其结果。"""
        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1
        try:
            async with self._store.connect() as conn:
                return await self._run_in_transaction(conn, work)
        finally:
            self._lock.release()

    async def _run_in_transaction(self, conn: AsyncConnection, work: UnitOfWork[T]) -> T:
        try:
            await conn.exec_driver_sql("BEGIN IMMEDIATE")
        except DBAPIError as exc:
            raise TransientStoreError(_driver_message(exc)) from exc
        try:
            result = await work(conn)
            await conn.exec_driver_sql("COMMIT")
        except BaseException as exc:
            logger.info("transaction rolled back error=%s", type(exc).__name__)
            await self._rollback(conn)
            translated = translate_store_error(exc)
            if translated is exc:
                raise
            raise translated from exc
        return result

    async def _rollback(self, conn: AsyncConnection) -> None:
        """回滚当前事务；回滚自身失败时只记录日志，保证原始错误向上抛出。"""
        try:
            await conn.exec_driver_sql("ROLLBACK")
        except Exception:
            logger.warning("rollback failed, keeping original error", exc_info=True)
