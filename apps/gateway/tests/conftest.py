"""apps/gateway 测试配置 -- 临时 StoreGroup + 种子数据 + httpx AsyncClient"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from teamhub.core.config import EngineConfig
from teamhub.core.store import StoreGroup, create_store_group


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """Gateway 测试用 StoreGroup"""
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def seeded(store_group: StoreGroup) -> dict[str, str]:
    """种子数据：alice 创建项目 apollo，bob 为成员，carol 不在项目中"""
    directory = store_group.directory_store
    alice = await directory.add_user("Alice", "alice@example.com", "engineering")
    bob = await directory.add_user("Bob", "bob@example.com", "engineering")
    carol = await directory.add_user("Carol", "carol@example.com", "design")
    project = await directory.add_project("Apollo", alice.user_id)
    await directory.add_project_member(project.project_id, bob.user_id)
    await store_group.conn.commit()
    return {
        "alice": alice.user_id,
        "bob": bob.user_id,
        "carol": carol.user_id,
        "project": project.project_id,
    }


@pytest_asyncio.fixture
async def app(store_group: StoreGroup, monkeypatch):
    """创建测试用 FastAPI app 实例（绕过 lifespan，手动挂载 StoreGroup）"""
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from teamhub.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.engine_config = EngineConfig()
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
