"""TeamHub Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .assignee_registry import SqliteAssigneeRegistry
from .directory_store import SqliteDirectoryStore
from .history_store import SqliteHistoryStore
from .sqlite_init import init_db, verify_wal_mode
from .task_store import SqliteTaskStore
from .transaction import atomic, consistent_read, storage_errors


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接与连接锁"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.write_lock = asyncio.Lock()
        self.task_store = SqliteTaskStore(conn)
        self.assignee_registry = SqliteAssigneeRegistry(conn)
        self.history_store = SqliteHistoryStore(conn)
        self.directory_store = SqliteDirectoryStore(conn)

    def transaction(self):
        """打开一个受写锁保护的事务上下文"""
        return atomic(self.conn, self.write_lock)

    def read(self):
        """打开一个与写事务串行化的只读上下文"""
        return consistent_read(self.write_lock)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径（":memory:" 表示内存库）

    Returns:
        StoreGroup 实例
    """
    if db_path != ":memory:":
        # 确保数据库目录存在
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteAssigneeRegistry",
    "SqliteHistoryStore",
    "SqliteDirectoryStore",
    "init_db",
    "verify_wal_mode",
    "atomic",
    "consistent_read",
    "storage_errors",
]
