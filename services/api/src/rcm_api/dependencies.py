"""请求上下文依赖。

职责:
1. 提供进程级共享的存储句柄，路由层统一通过依赖注入获取。
2. 测试通过 `create_app(store=...)` 注入独立的存储实例。
"""

from functools import lru_cache

from fastapi import Request

from rcm_api.core.config import get_settings
from rcm_api.db.store import Store


@lru_cache
def default_store() -> Store:
    """按当前配置创建的进程级存储句柄。"""
    return Store.from_settings(get_settings())


def get_store(request: Request) -> Store:
    """返回当前应用绑定的存储句柄。"""
    store = getattr(request.app.state, "store", None)
    if store is None:
        return default_store()
    return store
