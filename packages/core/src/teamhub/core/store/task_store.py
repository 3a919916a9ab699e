"""TaskStore SQLite 实现

此处仅提供数据库操作，不提交事务，事务由调用方（TaskService）管理。
删除任务会同时删除其分配关系；历史记录不受影响。
"""

from datetime import date, datetime
from typing import Any

import aiosqlite

from ..exceptions import NotFoundError, ValidationError
from ..models.enums import TaskStatus, Urgency
from ..models.task import Task, TaskFilter

# SELECT 列顺序，与 _row_to_task 的下标一一对应
_TASK_COLUMNS = """
    t.task_id, t.title, t.description, t.urgency, t.status, t.department,
    t.project_id, p.name, t.assignee_id, t.created_by, t.deadline,
    t.completed_at, t.created_at, t.updated_at
"""

_TASK_FROM = "FROM tasks t LEFT JOIN projects p ON t.project_id = p.project_id"

# 允许部分更新的列
_UPDATABLE_COLUMNS = {
    "title",
    "description",
    "urgency",
    "status",
    "department",
    "project_id",
    "assignee_id",
    "deadline",
    "completed_at",
}


def _to_db_value(value: Any) -> Any:
    """将模型字段值转换为 SQLite 存储值"""
    if isinstance(value, (Urgency, TaskStatus)):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录

        Raises:
            ValidationError: 标题为空
        """
        if not task.title or not task.title.strip():
            raise ValidationError("Task title must not be empty")

        await self._conn.execute(
            """
            INSERT INTO tasks (task_id, title, description, urgency, status,
                               department, project_id, assignee_id, created_by,
                               deadline, completed_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                task.title,
                task.description,
                task.urgency.value,
                task.status.value,
                task.department,
                task.project_id,
                task.assignee_id,
                task.created_by,
                task.deadline.isoformat(),
                task.completed_at.isoformat() if task.completed_at else None,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务（关联项目名称）"""
        cursor = await self._conn.execute(
            f"SELECT {_TASK_COLUMNS} {_TASK_FROM} WHERE t.task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def task_exists(self, task_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return await cursor.fetchone() is not None

    async def update_task(
        self,
        task_id: str,
        fields: dict[str, Any],
        updated_at: datetime,
    ) -> None:
        """部分更新：仅写入 fields 中出现的列，并刷新 updated_at

        Raises:
            ValidationError: 包含不可更新的列或标题为空
            NotFoundError: 任务不存在
        """
        unknown = set(fields) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        if "title" in fields and (not fields["title"] or not str(fields["title"]).strip()):
            raise ValidationError("Task title must not be empty")

        assignments = [f"{column} = ?" for column in fields]
        assignments.append("updated_at = ?")
        params = [_to_db_value(v) for v in fields.values()]
        params.append(updated_at.isoformat())
        params.append(task_id)

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ?",
            params,
        )
        if cursor.rowcount == 0:
            raise NotFoundError.task(task_id)

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        completed_at: datetime | None,
        updated_at: datetime,
    ) -> None:
        """更新任务状态与完成时间

        Raises:
            NotFoundError: 任务不存在
        """
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET status = ?, completed_at = ?, updated_at = ?
            WHERE task_id = ?
            """,
            (
                status.value,
                completed_at.isoformat() if completed_at else None,
                updated_at.isoformat(),
                task_id,
            ),
        )
        if cursor.rowcount == 0:
            raise NotFoundError.task(task_id)

    async def delete_task(self, task_id: str) -> None:
        """删除任务及其全部分配关系（历史记录保留）

        Raises:
            NotFoundError: 任务不存在
        """
        await self._conn.execute(
            "DELETE FROM task_assignees WHERE task_id = ?",
            (task_id,),
        )
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        if cursor.rowcount == 0:
            raise NotFoundError.task(task_id)

    async def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        """按筛选条件查询任务列表，按 deadline 正序"""
        task_filter = task_filter or TaskFilter()
        where, params = self._build_where(task_filter)
        cursor = await self._conn.execute(
            f"""
            SELECT {_TASK_COLUMNS} {_TASK_FROM}
            {where}
            ORDER BY t.deadline ASC, t.created_at ASC
            LIMIT ? OFFSET ?
            """,
            (*params, task_filter.limit, task_filter.offset),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def count_tasks(self, task_filter: TaskFilter | None = None) -> int:
        """按筛选条件统计任务总数（忽略 limit/offset）"""
        where, params = self._build_where(task_filter or TaskFilter())
        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM tasks t {where}",
            params,
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def list_urgent_tasks(self) -> list[Task]:
        """查询未完成的 urgent 任务，按 deadline 正序"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_TASK_COLUMNS} {_TASK_FROM}
            WHERE t.urgency = ? AND t.status != ?
            ORDER BY t.deadline ASC
            """,
            (Urgency.URGENT.value, TaskStatus.COMPLETED.value),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_due_for_user(self, user_id: str, day: date) -> list[Task]:
        """查询某天到期且未完成、用户可达的任务

        用户可达的三条路径：遗留 assignee_id、task_assignees 负责人、
        所属项目成员。EXISTS 子查询保证同一任务只出现一次。
        """
        cursor = await self._conn.execute(
            f"""
            SELECT {_TASK_COLUMNS} {_TASK_FROM}
            WHERE t.deadline = ?
              AND t.status != ?
              AND (
                t.assignee_id = ?
                OR EXISTS (
                    SELECT 1 FROM task_assignees ta
                    WHERE ta.task_id = t.task_id AND ta.user_id = ?
                )
                OR EXISTS (
                    SELECT 1 FROM project_members pm
                    WHERE pm.project_id = t.project_id AND pm.user_id = ?
                )
              )
            ORDER BY t.urgency = 'urgent' DESC, t.created_at ASC
            """,
            (day.isoformat(), TaskStatus.COMPLETED.value, user_id, user_id, user_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def find_completion_violations(self) -> list[str]:
        """查询违反 completed_at 不变式的任务 ID"""
        cursor = await self._conn.execute(
            """
            SELECT task_id FROM tasks
            WHERE (status = ? AND completed_at IS NULL)
               OR (status != ? AND completed_at IS NOT NULL)
            ORDER BY task_id
            """,
            (TaskStatus.COMPLETED.value, TaskStatus.COMPLETED.value),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    @staticmethod
    def _build_where(task_filter: TaskFilter) -> tuple[str, list[Any]]:
        """构造参数化 WHERE 子句"""
        conditions: list[str] = []
        params: list[Any] = []

        if task_filter.status is not None:
            conditions.append("t.status = ?")
            params.append(task_filter.status.value)
        if task_filter.urgency is not None:
            conditions.append("t.urgency = ?")
            params.append(task_filter.urgency.value)
        if task_filter.department is not None:
            conditions.append("t.department = ?")
            params.append(task_filter.department)
        if task_filter.project_id is not None:
            conditions.append("t.project_id = ?")
            params.append(task_filter.project_id)
        if task_filter.assignee_id is not None:
            conditions.append(
                "(t.assignee_id = ? OR EXISTS ("
                "SELECT 1 FROM task_assignees ta "
                "WHERE ta.task_id = t.task_id AND ta.user_id = ?))"
            )
            params.extend([task_filter.assignee_id, task_filter.assignee_id])
        if task_filter.is_completed is not None:
            conditions.append("t.status = ?" if task_filter.is_completed else "t.status != ?")
            params.append(TaskStatus.COMPLETED.value)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        return where, params

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            title=row[1],
            description=row[2],
            urgency=row[3],
            status=row[4],
            department=row[5],
            project_id=row[6],
            project_name=row[7],
            assignee_id=row[8],
            created_by=row[9],
            deadline=date.fromisoformat(row[10]),
            completed_at=datetime.fromisoformat(row[11]) if row[11] else None,
            created_at=datetime.fromisoformat(row[12]),
            updated_at=datetime.fromisoformat(row[13]),
        )
