"""Store Protocol 接口定义

定义 TaskStore、AssigneeRegistry、HistoryStore 与外部 MembershipProvider
的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from datetime import date, datetime
from typing import Any, Protocol, runtime_checkable

from ..models.assignment import Assignee
from ..models.enums import HistoryAction, TaskStatus
from ..models.history import HistoryEntry
from ..models.task import Task, TaskFilter


@runtime_checkable
class MembershipProvider(Protocol):
    """身份与项目成员关系提供方（外部协作者）"""

    async def user_exists(self, user_id: str) -> bool:
        """用户是否存在"""
        ...

    async def project_exists(self, project_id: str) -> bool:
        """项目是否存在"""
        ...

    async def members_of(self, project_id: str) -> list[str]:
        """项目成员用户 ID 列表（按加入顺序）"""
        ...


@runtime_checkable
class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def update_task(
        self,
        task_id: str,
        fields: dict[str, Any],
        updated_at: datetime,
    ) -> None:
        """部分更新任务字段"""
        ...

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        completed_at: datetime | None,
        updated_at: datetime,
    ) -> None:
        """更新任务状态与完成时间"""
        ...

    async def delete_task(self, task_id: str) -> None:
        """删除任务及其分配关系"""
        ...

    async def list_tasks(self, task_filter: TaskFilter | None = None) -> list[Task]:
        """按筛选条件查询任务列表"""
        ...

    async def list_due_for_user(self, user_id: str, day: date) -> list[Task]:
        """查询某天到期、用户可达的未完成任务"""
        ...


@runtime_checkable
class AssigneeRegistry(Protocol):
    """负责人登记接口"""

    async def assign(self, task_id: str, user_id: str, assigned_by: str) -> bool:
        """幂等分配，返回是否新增"""
        ...

    async def unassign(self, task_id: str, user_id: str) -> None:
        """移除分配"""
        ...

    async def list_for_task(self, task_id: str) -> list[Assignee]:
        """任务负责人列表"""
        ...

    async def list_for_user(self, user_id: str) -> list[str]:
        """用户被分配的任务 ID 列表"""
        ...

    async def cascade_from_project(
        self,
        task_id: str,
        project_id: str,
        membership: MembershipProvider,
    ) -> list[str]:
        """从项目成员级联分配"""
        ...


@runtime_checkable
class HistoryStore(Protocol):
    """任务历史存储接口

    历史表 append-only：只允许插入，不允许更新或删除。
    """

    async def record(
        self,
        task_id: str,
        user_id: str,
        action: HistoryAction,
        field_changed: str | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> HistoryEntry:
        """追加一条历史记录"""
        ...

    async def history(self, task_id: str) -> list[HistoryEntry]:
        """查询任务历史，最新在前"""
        ...
