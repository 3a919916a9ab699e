"""DirectoryStore SQLite 实现 -- 用户与项目成员关系

实现 MembershipProvider 协议供任务引擎使用；
add_* 方法用于初始化数据与测试，不自动提交事务。
"""

from datetime import UTC, datetime

import aiosqlite
from ulid import ULID

from ..models.directory import Project, User


class SqliteDirectoryStore:
    """用户目录的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def add_user(
        self,
        full_name: str,
        email: str = "",
        department: str = "",
        role: str = "member",
        user_id: str | None = None,
    ) -> User:
        """新增用户"""
        user = User(
            user_id=user_id or str(ULID()),
            full_name=full_name,
            email=email,
            department=department,
            role=role,
            created_at=datetime.now(UTC),
        )
        await self._conn.execute(
            """
            INSERT INTO users (user_id, full_name, email, department, role, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                user.user_id,
                user.full_name,
                user.email,
                user.department,
                user.role,
                user.created_at.isoformat(),
            ),
        )
        return user

    async def get_user(self, user_id: str) -> User | None:
        cursor = await self._conn.execute(
            """
            SELECT user_id, full_name, email, department, role, created_at
            FROM users WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return User(
            user_id=row[0],
            full_name=row[1],
            email=row[2],
            department=row[3],
            role=row[4],
            created_at=datetime.fromisoformat(row[5]),
        )

    async def add_project(
        self,
        name: str,
        created_by: str,
        description: str | None = None,
        project_id: str | None = None,
    ) -> Project:
        """新增项目，创建者自动成为 owner 成员"""
        project = Project(
            project_id=project_id or str(ULID()),
            name=name,
            description=description,
            created_by=created_by,
            created_at=datetime.now(UTC),
        )
        await self._conn.execute(
            """
            INSERT INTO projects (project_id, name, description, status, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                project.project_id,
                project.name,
                project.description,
                project.status,
                project.created_by,
                project.created_at.isoformat(),
            ),
        )
        await self.add_project_member(project.project_id, created_by, role="owner")
        return project

    async def add_project_member(
        self,
        project_id: str,
        user_id: str,
        role: str = "member",
    ) -> bool:
        """新增项目成员（幂等）

        Returns:
            True 表示新增，False 表示已是成员
        """
        cursor = await self._conn.execute(
            """
            INSERT OR IGNORE INTO project_members (project_id, user_id, role, added_at)
            VALUES (?, ?, ?, ?)
            """,
            (project_id, user_id, role, datetime.now(UTC).isoformat()),
        )
        return cursor.rowcount > 0

    async def remove_project_member(self, project_id: str, user_id: str) -> bool:
        cursor = await self._conn.execute(
            "DELETE FROM project_members WHERE project_id = ? AND user_id = ?",
            (project_id, user_id),
        )
        return cursor.rowcount > 0

    # MembershipProvider 协议实现

    async def user_exists(self, user_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM users WHERE user_id = ?",
            (user_id,),
        )
        return await cursor.fetchone() is not None

    async def project_exists(self, project_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM projects WHERE project_id = ?",
            (project_id,),
        )
        return await cursor.fetchone() is not None

    async def members_of(self, project_id: str) -> list[str]:
        """项目成员用户 ID 列表，按加入顺序"""
        cursor = await self._conn.execute(
            """
            SELECT user_id FROM project_members
            WHERE project_id = ?
            ORDER BY added_at ASC, rowid ASC
            """,
            (project_id,),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]
