"""FastAPI 应用入口点。"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from rcm_api.api.router import api_router
from rcm_api.core.config import Settings, get_settings
from rcm_api.db.store import Store
from rcm_api.dependencies import default_store
from rcm_api.exceptions import register_exception_handlers
from rcm_api.middlewares import register_middlewares

logger = logging.getLogger("rcm_api")


def _setup_logging(settings: Settings) -> None:
    """初始化根日志配置，重复调用不会叠加处理器。"""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("rcm_api").setLevel(settings.log_level)


def create_app(store: Store | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用实例。

    未传入 store 时使用按配置创建的进程级存储句柄。
    """
    settings = get_settings()
    _setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.store.open()
        logger.info("application started env=%s", settings.app_env)
        try:
            yield
        finally:
            await app.state.store.dispose()
            logger.info("application stopped")

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        lifespan=lifespan,
        description=(
            "角色、菜单与权限点配置管理接口。\n\n"
            "所有业务接口统一返回：`{request_id, data, meta}`。\n"
            "所有写操作在进程内串行执行，每个请求对应一个独立事务。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务存活与就绪探针。"},
            {"name": "menus", "description": "菜单树维护与同级排序。"},
            {"name": "permissions", "description": "两级权限点（class / method）维护与同级排序。"},
            {"name": "roles", "description": "角色维护与角色授权（菜单、权限点）。"},
            {"name": "transfer", "description": "按编码导出与导入完整配置。"},
        ],
    )
    app.state.store = store if store is not None else default_store()

    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
