"""事务一致性单元测试

测试内容：
1. 成功退出时提交
2. 业务异常回滚并原样抛出
3. SQLite 错误回滚并转换为 StorageError
4. 写锁串行化
5. 取消时回滚，读操作不穿透未提交的写入
6. 初始化 PRAGMA
"""

import asyncio

import pytest
from teamhub.core.exceptions import StorageError, ValidationError
from teamhub.core.models import HistoryAction
from teamhub.core.store import (
    atomic,
    consistent_read,
    create_store_group,
    storage_errors,
    verify_wal_mode,
)


class TestAtomic:
    async def test_commit_on_success(self, stores, make_task, core_db_path):
        task = make_task()
        async with stores.transaction():
            await stores.task_store.create_task(task)
            await stores.history_store.record(task.task_id, "u1", HistoryAction.CREATED)

        # 另开连接验证已落盘
        other = await create_store_group(str(core_db_path))
        try:
            assert await other.task_store.get_task(task.task_id) is not None
            assert len(await other.history_store.history(task.task_id)) == 1
        finally:
            await other.conn.close()

    async def test_rollback_on_domain_error(self, stores, make_task):
        task = make_task()
        with pytest.raises(ValidationError):
            async with stores.transaction():
                await stores.task_store.create_task(task)
                raise ValidationError("abort")

        assert await stores.task_store.get_task(task.task_id) is None

    async def test_sqlite_error_becomes_storage_error(self, stores, make_task):
        task = make_task()
        with pytest.raises(StorageError) as exc_info:
            async with atomic(stores.conn, stores.write_lock):
                await stores.task_store.create_task(task)
                await stores.conn.execute("INSERT INTO no_such_table VALUES (1)")

        assert exc_info.value.code == "STORAGE_ERROR"
        assert exc_info.value.original_error is not None
        assert await stores.task_store.get_task(task.task_id) is None

    async def test_writes_are_serialized(self, stores):
        order: list[str] = []

        async def writer(name: str) -> None:
            async with stores.transaction():
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(writer("a"), writer("b"))
        assert order in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    async def test_rollback_on_cancel(self, stores, make_task):
        task = make_task()
        entered = asyncio.Event()

        async def writer() -> None:
            async with stores.transaction():
                await stores.task_store.create_task(task)
                entered.set()
                await asyncio.Event().wait()

        pending = asyncio.create_task(writer())
        await entered.wait()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        # 下一个事务提交时不应带上被取消事务的写入
        async with stores.transaction():
            pass
        assert await stores.task_store.get_task(task.task_id) is None
        assert not stores.write_lock.locked()

    async def test_read_waits_for_uncommitted_write(self, stores, make_task):
        task = make_task()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def writer() -> None:
            async with stores.transaction():
                await stores.task_store.create_task(task)
                entered.set()
                await release.wait()
                raise ValidationError("abort")

        async def reader():
            async with consistent_read(stores.write_lock):
                return await stores.task_store.get_task(task.task_id)

        pending = asyncio.create_task(writer())
        await entered.wait()
        read = asyncio.create_task(reader())
        await asyncio.sleep(0.01)
        assert not read.done()

        release.set()
        with pytest.raises(ValidationError):
            await pending
        assert await read is None

    async def test_storage_errors_on_read(self, stores):
        with pytest.raises(StorageError):
            async with storage_errors():
                await stores.conn.execute("SELECT * FROM no_such_table")


class TestInitDb:
    async def test_wal_mode_enabled(self, stores):
        assert await verify_wal_mode(stores.conn) is True

    async def test_foreign_keys_enabled(self, stores):
        cursor = await stores.conn.execute("PRAGMA foreign_keys;")
        row = await cursor.fetchone()
        assert row[0] == 1

    async def test_memory_database(self):
        store_group = await create_store_group(":memory:")
        try:
            assert await store_group.task_store.list_tasks() == []
        finally:
            await store_group.conn.close()
