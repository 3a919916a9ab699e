"""集成测试共享 fixture -- 走完整 FastAPI 应用（绕过 lifespan）"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from teamhub.core.config import load_engine_config
from teamhub.core.store import create_store_group


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch):
    """集成测试用 FastAPI app"""
    db_path = tmp_path / "sqlite" / "integration.db"
    monkeypatch.setenv("TEAMHUB_DB_PATH", str(db_path))
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from teamhub.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(db_path))
    app.state.store_group = store_group
    app.state.engine_config = load_engine_config()

    yield app

    await store_group.conn.close()


@pytest_asyncio.fixture
async def directory(integration_app) -> dict[str, str]:
    """用户 A、B 组成项目 P"""
    store_group = integration_app.state.store_group
    user_a = await store_group.directory_store.add_user("User A")
    user_b = await store_group.directory_store.add_user("User B")
    project = await store_group.directory_store.add_project("Project P", user_a.user_id)
    await store_group.directory_store.add_project_member(project.project_id, user_b.user_id)
    await store_group.conn.commit()
    return {"a": user_a.user_id, "b": user_b.user_id, "project": project.project_id}


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
