import asyncio
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from rcm_api.db.store import Store
from rcm_api.main import create_app


@pytest.fixture
def store(tmp_path) -> Generator[Store, None, None]:
    """每个用例独立的文件数据库。"""
    handle = Store(f"sqlite+aiosqlite:///{tmp_path / 'rcm.db'}")
    yield handle
    asyncio.run(handle.dispose())


@pytest.fixture
def client(store: Store) -> Generator[TestClient, None, None]:
    """绑定独立存储的接口客户端；lifespan 负责打开与释放存储。"""
    with TestClient(create_app(store=store)) as test_client:
        yield test_client
