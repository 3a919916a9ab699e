"""HistoryStore SQLite 实现 -- 任务审计轨迹

历史表 append-only：只允许插入，不允许更新或删除。
task_seq 同一 task 内严格单调递增；任务删除后历史仍保留。
"""

from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..models.enums import HistoryAction
from ..models.history import HistoryEntry


class SqliteHistoryStore:
    """HistoryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def record(
        self,
        task_id: str,
        user_id: str,
        action: HistoryAction,
        field_changed: str | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> HistoryEntry:
        """追加历史记录（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        entry = HistoryEntry(
            history_id=str(ULID()),
            task_id=task_id,
            task_seq=await self.get_next_task_seq(task_id),
            user_id=user_id,
            action=action,
            field_changed=field_changed,
            old_value=old_value,
            new_value=new_value,
            ts=datetime.now(UTC),
        )
        await self._conn.execute(
            """
            INSERT INTO task_history (history_id, task_id, task_seq, user_id, action,
                                      field_changed, old_value, new_value, ts)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.history_id,
                entry.task_id,
                entry.task_seq,
                entry.user_id,
                entry.action.value,
                entry.field_changed,
                entry.old_value,
                entry.new_value,
                entry.ts.isoformat(),
            ),
        )
        return entry

    async def history(self, task_id: str) -> list[HistoryEntry]:
        """查询指定任务的全部历史，按 task_seq 倒序（最新在前）"""
        cursor = await self._conn.execute(
            """
            SELECT history_id, task_id, task_seq, user_id, action,
                   field_changed, old_value, new_value, ts
            FROM task_history
            WHERE task_id = ?
            ORDER BY task_seq DESC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def get_next_task_seq(self, task_id: str) -> int:
        """获取指定任务的下一个 task_seq（MAX+1）

        在事务内调用以确保原子性。
        """
        cursor = await self._conn.execute(
            "SELECT COALESCE(MAX(task_seq), 0) FROM task_history WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        return (row[0] if row else 0) + 1

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> HistoryEntry:
        """将数据库行转换为 HistoryEntry 模型"""
        return HistoryEntry(
            history_id=row[0],
            task_id=row[1],
            task_seq=row[2],
            user_id=row[3],
            action=HistoryAction(row[4]),
            field_changed=row[5],
            old_value=row[6],
            new_value=row[7],
            ts=datetime.fromisoformat(row[8]),
        )
