"""TaskService -- 任务生命周期引擎

组合 TaskStore、AssigneeRegistry、状态机与 HistoryStore 实现公共操作：
创建（含显式分配或项目级联分配）、更新、状态变更、删除、负责人增删、
今日到期查询。

每个写操作在同一 SQLite 事务内完成（业务变更 + 历史记录），
任一步失败整体回滚；写操作经 StoreGroup 写锁串行化，
并发状态变更按 last-write-wins 处理，历史中的旧值即被替换的值。
读操作同样与写事务串行化，不会读到未提交的数据。
"""

from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

import structlog
from teamhub.core.config import EngineConfig
from teamhub.core.exceptions import NotFoundError, ValidationError
from teamhub.core.models import (
    Assignee,
    HistoryAction,
    HistoryEntry,
    Task,
    TaskCreate,
    TaskFilter,
    TaskStatus,
    TaskUpdate,
    parse_command,
)
from teamhub.core.state_machine import coerce_status, plan_transition
from teamhub.core.store import StoreGroup
from teamhub.core.store.protocols import MembershipProvider
from ulid import ULID

log = structlog.get_logger()

# 不允许显式置空的字段
_NON_NULLABLE_FIELDS = ("title", "urgency", "status", "department", "deadline")


class TaskService:
    """任务业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        config: EngineConfig | None = None,
        membership: MembershipProvider | None = None,
    ) -> None:
        self._stores = store_group
        self._config = config or EngineConfig()
        # 默认使用同库的用户目录作为成员关系来源
        self._membership = membership or store_group.directory_store

    # ============================================================
    # 写操作
    # ============================================================

    async def create_task(
        self,
        command: TaskCreate | Mapping[str, Any],
        user_id: str,
    ) -> tuple[Task, list[str]]:
        """创建任务

        负责人确定规则：显式 assignee_ids 非空时逐个分配；
        否则若指定项目则从项目成员级联分配；否则不分配。

        Args:
            command: 创建命令（模型或字典）
            user_id: 创建者用户 ID

        Returns:
            (task, assignee_ids) -- 创建后的任务与最终负责人 ID 列表

        Raises:
            ValidationError: 必填字段缺失、枚举值非法、引用的项目或用户不存在
        """
        cmd = parse_command(TaskCreate, command)
        if not cmd.title.strip():
            raise ValidationError("Task title must not be empty")
        explicit_ids = list(dict.fromkeys(cmd.assignee_ids))

        async with self._stores.transaction():
            if cmd.project_id is not None:
                await self._ensure_project_exists(cmd.project_id)
            if cmd.assignee_id is not None:
                await self._ensure_users_exist([cmd.assignee_id])
            if explicit_ids and self._config.validate_assignees:
                await self._ensure_users_exist(explicit_ids)

            now = datetime.now(UTC)
            task = Task(
                task_id=str(ULID()),
                title=cmd.title,
                description=cmd.description,
                urgency=cmd.urgency,
                status=TaskStatus.PENDING,
                department=cmd.department,
                project_id=cmd.project_id,
                assignee_id=cmd.assignee_id,
                created_by=user_id,
                deadline=cmd.deadline,
                created_at=now,
                updated_at=now,
            )
            await self._stores.task_store.create_task(task)
            await self._stores.history_store.record(
                task.task_id, user_id, HistoryAction.CREATED
            )

            if explicit_ids:
                for assignee in explicit_ids:
                    await self._stores.assignee_registry.assign(
                        task.task_id, assignee, user_id
                    )
                assignee_ids = explicit_ids
            elif cmd.project_id is not None:
                assignee_ids = await self._stores.assignee_registry.cascade_from_project(
                    task.task_id, cmd.project_id, self._membership
                )
            else:
                assignee_ids = []

            created = await self._stores.task_store.get_task(task.task_id)

        log.info(
            "task_created",
            task_id=task.task_id,
            created_by=user_id,
            project_id=cmd.project_id,
            assignee_count=len(assignee_ids),
        )
        return created, assignee_ids

    async def update_task(
        self,
        task_id: str,
        changes: TaskUpdate | Mapping[str, Any],
        user_id: str,
    ) -> Task:
        """部分更新任务

        仅写入请求中出现的字段。包含 status 时应用与 change_status 相同的
        completed_at 副作用；状态确有变化时历史记为 status_changed（含新旧值），
        否则记为 updated。

        Raises:
            ValidationError: 无可更新字段、非法值、引用的项目或用户不存在
            InvalidTransitionError: 严格模式下状态流转不合法
            NotFoundError: 任务不存在
        """
        cmd = parse_command(TaskUpdate, changes)
        fields = cmd.model_dump(include=cmd.model_fields_set)
        if not fields:
            raise ValidationError("No fields to update")
        for name in _NON_NULLABLE_FIELDS:
            if name in fields and fields[name] is None:
                raise ValidationError(f"Field '{name}' cannot be null")
        if "title" in fields and not fields["title"].strip():
            raise ValidationError("Task title must not be empty")

        async with self._stores.transaction():
            current = await self._stores.task_store.get_task(task_id)
            if current is None:
                raise NotFoundError.task(task_id)
            if fields.get("project_id") is not None:
                await self._ensure_project_exists(fields["project_id"])
            if fields.get("assignee_id") is not None:
                await self._ensure_users_exist([fields["assignee_id"]])

            now = datetime.now(UTC)
            transition = None
            if "status" in fields:
                transition = plan_transition(
                    current.status,
                    fields["status"],
                    current.completed_at,
                    now,
                    strict=self._config.strict_transitions,
                )
                fields["completed_at"] = transition.completed_at

            await self._stores.task_store.update_task(task_id, fields, now)

            if transition is not None and transition.changed:
                await self._stores.history_store.record(
                    task_id,
                    user_id,
                    HistoryAction.STATUS_CHANGED,
                    field_changed="status",
                    old_value=transition.from_status.value,
                    new_value=transition.to_status.value,
                )
            else:
                await self._stores.history_store.record(
                    task_id, user_id, HistoryAction.UPDATED
                )

            updated = await self._stores.task_store.get_task(task_id)

        log.info(
            "task_updated",
            task_id=task_id,
            user_id=user_id,
            fields=sorted(cmd.model_fields_set),
        )
        return updated

    async def change_status(
        self,
        task_id: str,
        status: TaskStatus | str,
        user_id: str,
    ) -> Task:
        """变更任务状态

        进入 completed 设置 completed_at，离开 completed 清除 completed_at。
        每次调用写入一条 status_changed 历史（含新旧值）。

        Raises:
            ValidationError: 状态值非法
            InvalidTransitionError: 严格模式下流转不合法
            NotFoundError: 任务不存在
        """
        target = coerce_status(status)

        async with self._stores.transaction():
            current = await self._stores.task_store.get_task(task_id)
            if current is None:
                raise NotFoundError.task(task_id)

            now = datetime.now(UTC)
            transition = plan_transition(
                current.status,
                target,
                current.completed_at,
                now,
                strict=self._config.strict_transitions,
            )
            await self._stores.task_store.update_task_status(
                task_id,
                transition.to_status,
                transition.completed_at,
                now,
            )
            await self._stores.history_store.record(
                task_id,
                user_id,
                HistoryAction.STATUS_CHANGED,
                field_changed="status",
                old_value=transition.from_status.value,
                new_value=transition.to_status.value,
            )
            updated = await self._stores.task_store.get_task(task_id)

        log.info(
            "task_status_changed",
            task_id=task_id,
            user_id=user_id,
            from_status=transition.from_status.value,
            to_status=transition.to_status.value,
        )
        return updated

    async def delete_task(self, task_id: str, user_id: str) -> None:
        """删除任务

        先写 deleted 历史再删除任务行；分配关系随任务删除，历史保留。

        Raises:
            NotFoundError: 任务不存在
        """
        async with self._stores.transaction():
            if not await self._stores.task_store.task_exists(task_id):
                raise NotFoundError.task(task_id)
            await self._stores.history_store.record(
                task_id, user_id, HistoryAction.DELETED
            )
            await self._stores.task_store.delete_task(task_id)

        log.info("task_deleted", task_id=task_id, user_id=user_id)

    async def add_assignees(
        self,
        task_id: str,
        user_ids: list[str],
        assigned_by: str,
    ) -> int:
        """批量添加负责人（幂等）

        Returns:
            新增的分配数量（已存在的分配不计入）

        Raises:
            ValidationError: 用户列表为空或用户不存在（validate_assignees 开启时）
            NotFoundError: 任务不存在
        """
        unique_ids = list(dict.fromkeys(user_ids))
        if not unique_ids:
            raise ValidationError("user_ids must not be empty")

        added = 0
        async with self._stores.transaction():
            if not await self._stores.task_store.task_exists(task_id):
                raise NotFoundError.task(task_id)
            if self._config.validate_assignees:
                await self._ensure_users_exist(unique_ids)

            for assignee in unique_ids:
                if not await self._stores.assignee_registry.assign(
                    task_id, assignee, assigned_by
                ):
                    continue
                added += 1
                if self._config.audit_assignee_changes:
                    await self._stores.history_store.record(
                        task_id,
                        assigned_by,
                        HistoryAction.ASSIGNEE_ADDED,
                        field_changed="assignee",
                        new_value=assignee,
                    )

        log.info(
            "assignees_added",
            task_id=task_id,
            assigned_by=assigned_by,
            requested=len(unique_ids),
            added=added,
        )
        return added

    async def remove_assignee(
        self,
        task_id: str,
        user_id: str,
        acting_user_id: str,
    ) -> None:
        """移除负责人

        Raises:
            NotFoundError: 任务或分配关系不存在
        """
        async with self._stores.transaction():
            if not await self._stores.task_store.task_exists(task_id):
                raise NotFoundError.task(task_id)
            await self._stores.assignee_registry.unassign(task_id, user_id)
            if self._config.audit_assignee_changes:
                await self._stores.history_store.record(
                    task_id,
                    acting_user_id,
                    HistoryAction.ASSIGNEE_REMOVED,
                    field_changed="assignee",
                    old_value=user_id,
                )

        log.info(
            "assignee_removed",
            task_id=task_id,
            user_id=user_id,
            removed_by=acting_user_id,
        )

    # ============================================================
    # 读操作
    # ============================================================

    async def get_task(self, task_id: str) -> Task:
        """查询任务详情

        Raises:
            NotFoundError: 任务不存在
        """
        async with self._stores.read():
            task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise NotFoundError.task(task_id)
        return task

    async def list_tasks(
        self,
        task_filter: TaskFilter | Mapping[str, Any] | None = None,
    ) -> list[Task]:
        """按筛选条件查询任务列表，按 deadline 正序"""
        parsed = parse_command(TaskFilter, task_filter or {})
        async with self._stores.read():
            return await self._stores.task_store.list_tasks(parsed)

    async def count_tasks(
        self,
        task_filter: TaskFilter | Mapping[str, Any] | None = None,
    ) -> int:
        """统计筛选条件下的任务总数"""
        parsed = parse_command(TaskFilter, task_filter or {})
        async with self._stores.read():
            return await self._stores.task_store.count_tasks(parsed)

    async def list_urgent_tasks(self) -> list[Task]:
        async with self._stores.read():
            return await self._stores.task_store.list_urgent_tasks()

    async def get_history(self, task_id: str) -> list[HistoryEntry]:
        """查询任务历史（最新在前）

        任务已删除时仍返回其历史记录。
        """
        async with self._stores.read():
            return await self._stores.history_store.history(task_id)

    async def list_assignees(self, task_id: str) -> list[Assignee]:
        """查询任务负责人，按分配时间正序

        Raises:
            NotFoundError: 任务不存在
        """
        async with self._stores.read():
            if not await self._stores.task_store.task_exists(task_id):
                raise NotFoundError.task(task_id)
            return await self._stores.assignee_registry.list_for_task(task_id)

    async def tasks_due_today(
        self,
        user_id: str,
        today: date | None = None,
    ) -> list[Task]:
        """查询用户今日到期且未完成的任务

        用户通过遗留 assignee_id、负责人登记或项目成员关系任一路径可达即返回，
        同一任务只出现一次。

        Args:
            user_id: 用户 ID
            today: 查询日期，默认当前 UTC 日期
        """
        day = today or datetime.now(UTC).date()
        async with self._stores.read():
            return await self._stores.task_store.list_due_for_user(user_id, day)

    # ============================================================
    # 引用校验
    # ============================================================

    async def _ensure_project_exists(self, project_id: str) -> None:
        if not await self._membership.project_exists(project_id):
            raise ValidationError(f"Project {project_id} does not exist")

    async def _ensure_users_exist(self, user_ids: list[str]) -> None:
        missing = [
            user_id
            for user_id in user_ids
            if not await self._membership.user_exists(user_id)
        ]
        if missing:
            raise ValidationError(f"Unknown user ids: {', '.join(missing)}")
