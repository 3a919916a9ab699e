"""TeamHub Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .assignment import Assignee, Assignment
from .directory import Project, User
from .enums import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    HistoryAction,
    TaskStatus,
    Urgency,
    validate_transition,
)
from .history import HistoryEntry
from .task import Task, TaskCreate, TaskFilter, TaskUpdate, parse_command

__all__ = [
    # 枚举
    "TaskStatus",
    "Urgency",
    "HistoryAction",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "validate_transition",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TaskFilter",
    "parse_command",
    # Assignment
    "Assignment",
    "Assignee",
    # History
    "HistoryEntry",
    # Directory
    "User",
    "Project",
]
