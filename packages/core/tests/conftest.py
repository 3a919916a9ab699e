"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from teamhub.core.models import Task
from teamhub.core.store import StoreGroup, create_store_group
from ulid import ULID


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def stores(core_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 Store 实例组"""
    store_group = await create_store_group(str(core_db_path))
    yield store_group
    await store_group.conn.close()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Task 构造器，未指定字段使用默认值"""

    def _make(**overrides) -> Task:
        now = datetime.now(UTC)
        fields = {
            "task_id": str(ULID()),
            "title": "Write quarterly report",
            "created_by": "creator",
            "deadline": date(2026, 10, 16),
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make
