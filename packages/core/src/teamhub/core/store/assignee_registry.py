"""AssigneeRegistry SQLite 实现

维护任务与负责人的多对多关系：
- (task_id, user_id) 唯一，重复分配静默吸收（INSERT OR IGNORE）
- 级联分配：从项目成员列表批量分配，操作者记为 system
"""

from datetime import UTC, datetime

import aiosqlite
import structlog
from ulid import ULID

from ..config import SYSTEM_ACTOR
from ..exceptions import NotFoundError
from ..models.assignment import Assignee, Assignment
from .protocols import MembershipProvider

log = structlog.get_logger()


class SqliteAssigneeRegistry:
    """AssigneeRegistry 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def assign(
        self,
        task_id: str,
        user_id: str,
        assigned_by: str,
        assigned_at: datetime | None = None,
    ) -> bool:
        """幂等分配负责人

        注意：此方法不自动提交事务，需由调用方管理事务。

        Returns:
            True 表示新增分配，False 表示该分配已存在

        Raises:
            NotFoundError: 任务不存在
        """
        cursor = await self._conn.execute(
            "SELECT 1 FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        if await cursor.fetchone() is None:
            raise NotFoundError.task(task_id)

        assigned_at = assigned_at or datetime.now(UTC)
        cursor = await self._conn.execute(
            """
            INSERT OR IGNORE INTO task_assignees (assignment_id, task_id, user_id,
                                                  assigned_at, assigned_by)
            VALUES (?, ?, ?, ?, ?)
            """,
            (str(ULID()), task_id, user_id, assigned_at.isoformat(), assigned_by),
        )
        return cursor.rowcount > 0

    async def unassign(self, task_id: str, user_id: str) -> None:
        """移除负责人

        Raises:
            NotFoundError: 该分配不存在
        """
        cursor = await self._conn.execute(
            "DELETE FROM task_assignees WHERE task_id = ? AND user_id = ?",
            (task_id, user_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError.assignment(task_id, user_id)

    async def list_for_task(self, task_id: str) -> list[Assignee]:
        """查询任务负责人（关联用户展示字段），按分配时间正序"""
        cursor = await self._conn.execute(
            """
            SELECT ta.user_id, u.full_name, u.email, u.department,
                   ta.assigned_at, ta.assigned_by
            FROM task_assignees ta
            LEFT JOIN users u ON ta.user_id = u.user_id
            WHERE ta.task_id = ?
            ORDER BY ta.assigned_at ASC, ta.rowid ASC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [
            Assignee(
                user_id=row[0],
                full_name=row[1],
                email=row[2],
                department=row[3],
                assigned_at=datetime.fromisoformat(row[4]),
                assigned_by=row[5],
            )
            for row in rows
        ]

    async def list_assignments(self, task_id: str) -> list[Assignment]:
        """查询任务的原始分配记录"""
        cursor = await self._conn.execute(
            """
            SELECT assignment_id, task_id, user_id, assigned_at, assigned_by
            FROM task_assignees
            WHERE task_id = ?
            ORDER BY assigned_at ASC, rowid ASC
            """,
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [
            Assignment(
                assignment_id=row[0],
                task_id=row[1],
                user_id=row[2],
                assigned_at=datetime.fromisoformat(row[3]),
                assigned_by=row[4],
            )
            for row in rows
        ]

    async def list_for_user(self, user_id: str) -> list[str]:
        """查询用户被分配的全部任务 ID"""
        cursor = await self._conn.execute(
            """
            SELECT task_id FROM task_assignees
            WHERE user_id = ?
            ORDER BY assigned_at ASC, rowid ASC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def cascade_from_project(
        self,
        task_id: str,
        project_id: str,
        membership: MembershipProvider,
    ) -> list[str]:
        """将项目全部成员分配到任务，操作者记为 system

        Returns:
            项目成员 ID 列表（按成员加入顺序）
        """
        member_ids = await membership.members_of(project_id)
        now = datetime.now(UTC)
        for user_id in member_ids:
            await self.assign(task_id, user_id, SYSTEM_ACTOR, assigned_at=now)

        log.debug(
            "assignees_cascaded",
            task_id=task_id,
            project_id=project_id,
            member_count=len(member_ids),
        )
        return member_ids

    async def find_orphans(self) -> list[tuple[str, str]]:
        """查询任务已不存在的分配记录 (task_id, user_id)"""
        cursor = await self._conn.execute(
            """
            SELECT ta.task_id, ta.user_id FROM task_assignees ta
            WHERE NOT EXISTS (SELECT 1 FROM tasks t WHERE t.task_id = ta.task_id)
            ORDER BY ta.task_id, ta.user_id
            """
        )
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]
