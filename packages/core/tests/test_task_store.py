"""TaskStore 单元测试

测试内容：
1. 创建/查询/部分更新/删除
2. 列表筛选、排序、分页、计数
3. urgent 列表与今日到期三路查询
"""

from datetime import UTC, date, datetime

import pytest
from teamhub.core.exceptions import NotFoundError, ValidationError
from teamhub.core.models import TaskFilter, TaskStatus, Urgency

TODAY = date(2026, 10, 16)


class TestTaskStoreCrud:
    async def test_create_and_get(self, stores, make_task):
        task = make_task(description="Numbers for Q3", urgency=Urgency.HIGH)
        await stores.task_store.create_task(task)
        await stores.conn.commit()

        loaded = await stores.task_store.get_task(task.task_id)
        assert loaded is not None
        assert loaded.title == task.title
        assert loaded.description == "Numbers for Q3"
        assert loaded.urgency == Urgency.HIGH
        assert loaded.status == TaskStatus.PENDING
        assert loaded.completed_at is None
        assert loaded.project_name is None

    async def test_get_missing_returns_none(self, stores):
        assert await stores.task_store.get_task("01JNOTEXIST000000000000000") is None

    async def test_create_rejects_blank_title(self, stores, make_task):
        with pytest.raises(ValidationError):
            await stores.task_store.create_task(make_task(title="   "))

    async def test_project_name_is_joined(self, stores, make_task):
        owner = await stores.directory_store.add_user("Owner")
        project = await stores.directory_store.add_project("Apollo", owner.user_id)
        task = make_task(project_id=project.project_id)
        await stores.task_store.create_task(task)
        await stores.conn.commit()

        loaded = await stores.task_store.get_task(task.task_id)
        assert loaded.project_name == "Apollo"

    async def test_partial_update_leaves_other_fields(self, stores, make_task):
        task = make_task(description="keep me", department="finance")
        await stores.task_store.create_task(task)

        later = datetime.now(UTC)
        await stores.task_store.update_task(
            task.task_id, {"title": "Renamed", "urgency": Urgency.URGENT}, later
        )
        await stores.conn.commit()

        loaded = await stores.task_store.get_task(task.task_id)
        assert loaded.title == "Renamed"
        assert loaded.urgency == Urgency.URGENT
        assert loaded.description == "keep me"
        assert loaded.department == "finance"
        assert loaded.updated_at == later

    async def test_update_unknown_column_rejected(self, stores, make_task):
        task = make_task()
        await stores.task_store.create_task(task)
        with pytest.raises(ValidationError):
            await stores.task_store.update_task(
                task.task_id, {"created_by": "someone"}, datetime.now(UTC)
            )

    async def test_update_missing_task(self, stores):
        with pytest.raises(NotFoundError) as exc_info:
            await stores.task_store.update_task(
                "01JNOTEXIST000000000000000", {"title": "x"}, datetime.now(UTC)
            )
        assert exc_info.value.code == "TASK_NOT_FOUND"

    async def test_update_status(self, stores, make_task):
        task = make_task()
        await stores.task_store.create_task(task)
        now = datetime.now(UTC)
        await stores.task_store.update_task_status(
            task.task_id, TaskStatus.COMPLETED, now, now
        )

        loaded = await stores.task_store.get_task(task.task_id)
        assert loaded.status == TaskStatus.COMPLETED
        assert loaded.completed_at == now

    async def test_delete_removes_task_and_assignments(self, stores, make_task):
        task = make_task()
        await stores.task_store.create_task(task)
        await stores.assignee_registry.assign(task.task_id, "u1", "creator")

        await stores.task_store.delete_task(task.task_id)
        await stores.conn.commit()

        assert await stores.task_store.get_task(task.task_id) is None
        assert await stores.assignee_registry.list_for_task(task.task_id) == []

    async def test_delete_missing_task(self, stores):
        with pytest.raises(NotFoundError):
            await stores.task_store.delete_task("01JNOTEXIST000000000000000")


class TestTaskStoreListing:
    async def test_ordered_by_deadline(self, stores, make_task):
        for day in (20, 17, 25):
            await stores.task_store.create_task(make_task(deadline=date(2026, 10, day)))
        await stores.conn.commit()

        tasks = await stores.task_store.list_tasks()
        assert [t.deadline.day for t in tasks] == [17, 20, 25]

    async def test_filters(self, stores, make_task):
        await stores.task_store.create_task(
            make_task(urgency=Urgency.URGENT, department="ops")
        )
        await stores.task_store.create_task(make_task(department="finance"))
        done = make_task(status=TaskStatus.COMPLETED, completed_at=datetime.now(UTC))
        await stores.task_store.create_task(done)
        await stores.conn.commit()

        by_dept = await stores.task_store.list_tasks(TaskFilter(department="ops"))
        assert len(by_dept) == 1
        by_urgency = await stores.task_store.list_tasks(TaskFilter(urgency=Urgency.URGENT))
        assert len(by_urgency) == 1
        completed = await stores.task_store.list_tasks(TaskFilter(is_completed=True))
        assert [t.task_id for t in completed] == [done.task_id]
        open_tasks = await stores.task_store.list_tasks(TaskFilter(is_completed=False))
        assert len(open_tasks) == 2

    async def test_assignee_filter_matches_legacy_and_registry(self, stores, make_task):
        legacy = make_task(assignee_id="u1")
        registered = make_task()
        other = make_task()
        for task in (legacy, registered, other):
            await stores.task_store.create_task(task)
        await stores.assignee_registry.assign(registered.task_id, "u1", "creator")
        # 两条路径同时命中也只返回一次
        await stores.assignee_registry.assign(legacy.task_id, "u1", "creator")
        await stores.conn.commit()

        tasks = await stores.task_store.list_tasks(TaskFilter(assignee_id="u1"))
        assert {t.task_id for t in tasks} == {legacy.task_id, registered.task_id}
        assert len(tasks) == 2

    async def test_pagination_and_count(self, stores, make_task):
        for day in range(1, 6):
            await stores.task_store.create_task(make_task(deadline=date(2026, 11, day)))
        await stores.conn.commit()

        page = await stores.task_store.list_tasks(TaskFilter(limit=2, offset=2))
        assert [t.deadline.day for t in page] == [3, 4]
        assert await stores.task_store.count_tasks(TaskFilter(limit=2)) == 5

    async def test_urgent_excludes_completed(self, stores, make_task):
        open_urgent = make_task(urgency=Urgency.URGENT)
        done_urgent = make_task(
            urgency=Urgency.URGENT,
            status=TaskStatus.COMPLETED,
            completed_at=datetime.now(UTC),
        )
        for task in (open_urgent, done_urgent, make_task()):
            await stores.task_store.create_task(task)
        await stores.conn.commit()

        urgent = await stores.task_store.list_urgent_tasks()
        assert [t.task_id for t in urgent] == [open_urgent.task_id]


class TestDueForUser:
    async def test_three_reachability_paths(self, stores, make_task):
        directory = stores.directory_store
        owner = await directory.add_user("Owner")
        member = await directory.add_user("Member")
        project = await directory.add_project("Apollo", owner.user_id)
        await directory.add_project_member(project.project_id, member.user_id)

        via_legacy = make_task(deadline=TODAY, assignee_id="direct")
        via_registry = make_task(deadline=TODAY)
        via_project = make_task(deadline=TODAY, project_id=project.project_id)
        for task in (via_legacy, via_registry, via_project):
            await stores.task_store.create_task(task)
        await stores.assignee_registry.assign(via_registry.task_id, "direct", "creator")
        await stores.conn.commit()

        direct = await stores.task_store.list_due_for_user("direct", TODAY)
        assert {t.task_id for t in direct} == {via_legacy.task_id, via_registry.task_id}

        by_membership = await stores.task_store.list_due_for_user(member.user_id, TODAY)
        assert [t.task_id for t in by_membership] == [via_project.task_id]

    async def test_excludes_other_days_and_completed(self, stores, make_task):
        tomorrow = make_task(deadline=date(2026, 10, 17), assignee_id="u1")
        done = make_task(
            deadline=TODAY,
            assignee_id="u1",
            status=TaskStatus.COMPLETED,
            completed_at=datetime.now(UTC),
        )
        cancelled = make_task(
            deadline=TODAY, assignee_id="u1", status=TaskStatus.CANCELLED
        )
        for task in (tomorrow, done, cancelled):
            await stores.task_store.create_task(task)
        await stores.conn.commit()

        tasks = await stores.task_store.list_due_for_user("u1", TODAY)
        assert [t.task_id for t in tasks] == [cancelled.task_id]


class TestCompletionViolations:
    async def test_reports_inconsistent_rows(self, stores, make_task):
        good = make_task()
        bad = make_task()
        await stores.task_store.create_task(good)
        await stores.task_store.create_task(bad)
        # 绕过引擎直接写入不一致数据
        await stores.conn.execute(
            "UPDATE tasks SET status = 'completed' WHERE task_id = ?",
            (bad.task_id,),
        )
        await stores.conn.commit()

        assert await stores.task_store.find_completion_violations() == [bad.task_id]
