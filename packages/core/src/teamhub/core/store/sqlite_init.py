"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# 用户目录表 DDL（身份与项目成员关系）
_DIRECTORY_DDL = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id     TEXT PRIMARY KEY,
        full_name   TEXT NOT NULL,
        email       TEXT NOT NULL DEFAULT '',
        department  TEXT NOT NULL DEFAULT '',
        role        TEXT NOT NULL DEFAULT 'member',
        created_at  TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        project_id  TEXT PRIMARY KEY,
        name        TEXT NOT NULL,
        description TEXT,
        status      TEXT NOT NULL DEFAULT 'active',
        created_by  TEXT NOT NULL,
        created_at  TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS project_members (
        project_id  TEXT NOT NULL,
        user_id     TEXT NOT NULL,
        role        TEXT NOT NULL DEFAULT 'member',
        added_at    TEXT NOT NULL,

        PRIMARY KEY (project_id, user_id),
        FOREIGN KEY (project_id) REFERENCES projects(project_id) ON DELETE CASCADE,
        FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
    );
    """,
]

_DIRECTORY_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_project_members_user ON project_members(user_id);",
]

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id      TEXT PRIMARY KEY,
    title        TEXT NOT NULL,
    description  TEXT,
    urgency      TEXT NOT NULL DEFAULT 'medium',
    status       TEXT NOT NULL DEFAULT 'pending',
    department   TEXT NOT NULL DEFAULT '',
    project_id   TEXT,
    assignee_id  TEXT,
    created_by   TEXT NOT NULL,
    deadline     TEXT NOT NULL,
    completed_at TEXT,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,

    FOREIGN KEY (project_id) REFERENCES projects(project_id)
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON tasks(deadline);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assignee_id ON tasks(assignee_id);",
]

# task_assignees 表 DDL（任务删除时级联删除）
_ASSIGNEES_DDL = """
CREATE TABLE IF NOT EXISTS task_assignees (
    assignment_id TEXT PRIMARY KEY,
    task_id       TEXT NOT NULL,
    user_id       TEXT NOT NULL,
    assigned_at   TEXT NOT NULL,
    assigned_by   TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id) ON DELETE CASCADE
);
"""

_ASSIGNEES_INDEXES = [
    # 同一用户不可重复分配到同一任务
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_task_assignees_pair ON task_assignees(task_id, user_id);",
    "CREATE INDEX IF NOT EXISTS idx_task_assignees_user ON task_assignees(user_id);",
]

# task_history 表 DDL
# 不对 tasks 建外键：任务删除后历史记录仍需保留
_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS task_history (
    history_id    TEXT PRIMARY KEY,
    task_id       TEXT NOT NULL,
    task_seq      INTEGER NOT NULL,
    user_id       TEXT NOT NULL,
    action        TEXT NOT NULL,
    field_changed TEXT,
    old_value     TEXT,
    new_value     TEXT,
    ts            TEXT NOT NULL
);
"""

_HISTORY_INDEXES = [
    # 任务内历史序号唯一约束（确保 task_seq 严格单调递增）
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_task_history_seq ON task_history(task_id, task_seq);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    for ddl in _DIRECTORY_DDL:
        await conn.execute(ddl)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_ASSIGNEES_DDL)
    await conn.execute(_HISTORY_DDL)

    # 创建索引
    for idx_sql in (
        _DIRECTORY_INDEXES + _TASKS_INDEXES + _ASSIGNEES_INDEXES + _HISTORY_INDEXES
    ):
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
