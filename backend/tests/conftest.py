"""
测试配置

导入应用之前先把数据库、日志目录指向临时目录，并关闭定时任务
"""
import asyncio
import os
import tempfile

_tmp_dir = tempfile.mkdtemp(prefix="canopy-test-")
os.environ["SQLITE_DATABASE_URI"] = f"sqlite:///{_tmp_dir}/canopy.db"
os.environ["LOG_DIR"] = os.path.join(_tmp_dir, "logs")
os.environ["SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from canopy.core.deps import get_db
from canopy.db.init_db import ensure_tables_exist
from canopy.main import app


@pytest.fixture
def engine(tmp_path):
    """每个测试一个独立的 SQLite 文件"""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db", poolclass=NullPool)
    asyncio.run(ensure_tables_exist(test_engine))
    yield test_engine
    asyncio.run(test_engine.dispose())


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def tenant(client):
    response = client.post("/api/v1/tenants/", json={"name": "Green Leaf", "slug": "green-leaf"})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def headers(tenant):
    return {"X-Tenant-ID": str(tenant["id"])}


