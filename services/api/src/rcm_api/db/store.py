"""嵌入式数据库句柄。

职责:
1. 首次访问时惰性创建进程内唯一的异步引擎。
2. 每条底层连接开启外键约束，并关闭驱动隐式事务，事务边界只由写入串行器控制。
3. 幂等建表（仅创建缺失的表），并校验关键字段是否齐全。
4. 提供查询/执行/原始语句三类基础操作。
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import event, inspect, text
from sqlalchemy.engine import Connection, RowMapping, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from sqlalchemy.sql import Executable

import rcm_api.models  # noqa: F401
from rcm_api.core.config import Settings
from rcm_api.db.serializer import WriteSerializer
from rcm_api.errors import TransientStoreError
from rcm_api.models.base import Base

logger = logging.getLogger("rcm_api.store")

# 启动时校验的必需字段，缺失说明库文件来自旧版本结构。
REQUIRED_COLUMNS: dict[str, tuple[str, ...]] = {
    "menu": ("id", "parent_id", "name", "code", "sort", "enabled"),
    "permission": ("id", "parent_id", "level", "name", "code", "sort", "enabled"),
    "role": ("id", "name", "code", "enabled"),
    "role_menu": ("role_id", "menu_id"),
    "role_permission": ("role_id", "permission_id"),
}


@dataclass(frozen=True)
class ExecResult:
    """写语句执行结果。"""

    last_insert_id: int | None
    rows_affected: int


def _configure_connection(dbapi_connection, _connection_record) -> None:
    """新建底层连接时关闭隐式事务并开启外键约束。"""
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _validate_schema(conn: Connection) -> None:
    """校验各表必需字段，缺失时拒绝启动。"""
    inspector = inspect(conn)
    for table, required in REQUIRED_COLUMNS.items():
        names = {column["name"] for column in inspector.get_columns(table)}
        missing = [column for column in required if column not in names]
        if missing:
            raise TransientStoreError(
                f'SQLite schema mismatch: table "{table}" missing columns: {", ".join(missing)}. '
                "If this is a dev environment, delete the DB file and restart.",
                details={"table": table, "missing": missing},
            )


class Store:
    """进程级存储句柄。

    引擎在首次使用时创建，进程生命周期内复用；写事务统一经 `serializer` 排队执行。
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        url = make_url(database_url)
        if url.get_backend_name() != "sqlite":
            raise ValueError(f"unsupported database backend: {url.get_backend_name()}")
        if not url.database or url.database == ":memory:":
            # 每次取连接都会新开底层连接，内存库无法在连接间共享。
            raise ValueError("in-memory sqlite database is not supported, use a file path")
        self.database_url = database_url
        self.echo = echo
        self.serializer = WriteSerializer(self)
        self._engine: AsyncEngine | None = None
        self._opened = False
        self._open_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Store":
        """按应用配置构造存储句柄。"""
        return cls(settings.database_url, echo=settings.database_echo)

    @property
    def engine(self) -> AsyncEngine:
        """惰性创建并返回异步引擎。"""
        if self._engine is None:
            url = make_url(self.database_url)
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
            # 不使用连接池：读请求各自取连接，写请求由串行器保证同一时刻只有一个事务。
            engine = create_async_engine(url, echo=self.echo, poolclass=NullPool)
            event.listen(engine.sync_engine, "connect", _configure_connection)
            self._engine = engine
            logger.info("store engine created database=%s", url.database)
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._opened

    async def open(self) -> None:
        """建表并校验结构，重复调用无副作用。"""
        if self._opened:
            return
        async with self._open_lock:
            if self._opened:
                return
            try:
                async with self.engine.connect() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                    await conn.run_sync(_validate_schema)
            except DBAPIError as exc:
                raise TransientStoreError(f"failed to open store: {exc.orig}") from exc
            self._opened = True
            logger.info("store schema ready tables=%s", ",".join(sorted(REQUIRED_COLUMNS)))

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        """获取一条连接，用于非事务读取或交由串行器开启事务。"""
        await self.open()
        try:
            async with self.engine.connect() as conn:
                yield conn
        except DBAPIError as exc:
            raise TransientStoreError(str(exc.orig) if exc.orig is not None else str(exc)) from exc

    async def ping(self) -> None:
        """执行最小查询验证数据库可用。"""
        async with self.connect() as conn:
            await conn.execute(text("select 1"))

    async def dispose(self) -> None:
        """释放引擎，之后再次使用会重新创建。"""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
        self._opened = False


async def query(conn: AsyncConnection, statement: Executable) -> list[RowMapping]:
    """执行查询并以字段名映射形式返回全部行。"""
    result = await conn.execute(statement)
    return list(result.mappings().all())


async def query_one(conn: AsyncConnection, statement: Executable) -> RowMapping | None:
    """执行查询并返回首行，无结果时返回 None。"""
    result = await conn.execute(statement)
    return result.mappings().first()


async def execute(conn: AsyncConnection, statement: Executable) -> ExecResult:
    """执行写语句，返回新插入行 ID 与受影响行数。"""
    result = await conn.execute(statement)
    return ExecResult(last_insert_id=result.lastrowid, rows_affected=result.rowcount)


async def execute_raw(conn: AsyncConnection, sql: str) -> None:
    """执行原始语句（事务控制、PRAGMA 等）。"""
    await conn.exec_driver_sql(sql)
