"""复合写操作的原子事务封装

任务创建（含级联分配与历史）、状态变更（含历史）、删除（含分配清理与历史）
均在同一 SQLite 事务内提交，任一步失败整体回滚。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite
import structlog

from ..exceptions import StorageError

log = structlog.get_logger()


@asynccontextmanager
async def atomic(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """在写锁保护下执行一个事务

    共享连接上的写操作串行化；成功退出时提交，异常或取消时回滚。

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        lock: StoreGroup 持有的写锁

    Raises:
        StorageError: 底层 SQLite 错误（已回滚）
    """
    async with lock:
        try:
            yield conn
            await conn.commit()
        except aiosqlite.Error as e:
            await conn.rollback()
            log.error("transaction_rolled_back", error_type=type(e).__name__, error=str(e))
            raise StorageError(f"Storage operation failed: {e}", original_error=e) from e
        except BaseException:
            # 含 CancelledError，释放写锁前回滚
            await conn.rollback()
            raise


@asynccontextmanager
async def storage_errors() -> AsyncIterator[None]:
    """只读查询的错误转换：aiosqlite.Error -> StorageError"""
    try:
        yield
    except aiosqlite.Error as e:
        log.error("storage_query_failed", error_type=type(e).__name__, error=str(e))
        raise StorageError(f"Storage query failed: {e}", original_error=e) from e


@asynccontextmanager
async def consistent_read(lock: asyncio.Lock) -> AsyncIterator[None]:
    """在写锁保护下执行只读查询

    共享连接上未提交的写入对同连接的查询可见，
    读操作与写事务串行化后只能看到已提交的数据。
    """
    async with lock, storage_errors():
        yield
