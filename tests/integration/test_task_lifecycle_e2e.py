"""任务生命周期端到端集成测试

创建（项目级联）-> 完成 -> 今日到期查询 -> 删除 -> 历史保留 完整链路
"""

import asyncio
from datetime import UTC, datetime

from httpx import AsyncClient


class TestTaskLifecycleEndToEnd:
    async def test_project_task_lifecycle(self, client: AsyncClient, directory):
        today = datetime.now(UTC).date().isoformat()
        headers_a = {"X-User-ID": directory["a"]}

        # 1. 在项目 P 下创建今日到期任务，不指定负责人
        resp = await client.post(
            "/api/tasks",
            json={
                "title": "Prepare launch checklist",
                "deadline": today,
                "project_id": directory["project"],
            },
            headers=headers_a,
        )
        assert resp.status_code == 201
        data = resp.json()
        task_id = data["task"]["task_id"]
        assert data["task"]["status"] == "pending"
        assert data["task"]["completed_at"] is None
        assert data["assignee_ids"] == [directory["a"], directory["b"]]

        resp = await client.get(f"/api/tasks/{task_id}/history", headers=headers_a)
        assert [h["action"] for h in resp.json()["history"]] == ["created"]

        # 2. 完成任务
        resp = await client.patch(
            f"/api/tasks/{task_id}/status",
            json={"status": "completed"},
            headers=headers_a,
        )
        assert resp.status_code == 200
        assert resp.json()["task"]["status"] == "completed"
        assert resp.json()["task"]["completed_at"] is not None

        resp = await client.get(f"/api/tasks/{task_id}/history", headers=headers_a)
        history = resp.json()["history"]
        assert len(history) == 2
        assert history[0]["action"] == "status_changed"
        assert (history[0]["old_value"], history[0]["new_value"]) == ("pending", "completed")

        # 3. 已完成任务不出现在今日到期中；重新打开后出现且仅出现一次
        resp = await client.get("/api/tasks/due-today", headers=headers_a)
        assert resp.json()["tasks"] == []

        await client.patch(
            f"/api/tasks/{task_id}/status",
            json={"status": "in-progress"},
            headers=headers_a,
        )
        resp = await client.get("/api/tasks/due-today", headers=headers_a)
        assert [t["task_id"] for t in resp.json()["tasks"]] == [task_id]

        # 4. 删除后分配清理、历史保留
        resp = await client.delete(f"/api/tasks/{task_id}", headers=headers_a)
        assert resp.status_code == 200

        resp = await client.get("/api/tasks", headers=headers_a)
        assert task_id not in [t["task_id"] for t in resp.json()["tasks"]]

        resp = await client.get(f"/api/tasks/{task_id}/history", headers=headers_a)
        assert [h["action"] for h in resp.json()["history"]] == [
            "deleted",
            "status_changed",
            "status_changed",
            "created",
        ]

    async def test_concurrent_status_changes_last_write_wins(
        self, client: AsyncClient, directory
    ):
        headers = {"X-User-ID": directory["a"]}
        resp = await client.post(
            "/api/tasks",
            json={"title": "Race", "deadline": "2026-10-16"},
            headers=headers,
        )
        task_id = resp.json()["task"]["task_id"]

        responses = await asyncio.gather(
            *[
                client.patch(
                    f"/api/tasks/{task_id}/status",
                    json={"status": status},
                    headers=headers,
                )
                for status in ("in-progress", "completed", "cancelled")
            ]
        )
        assert all(r.status_code == 200 for r in responses)

        resp = await client.get(f"/api/tasks/{task_id}/history", headers=headers)
        history = resp.json()["history"]
        changes = [h for h in history if h["action"] == "status_changed"]
        assert len(changes) == 3

        # 每条记录的旧值都是前一条的新值，最终状态等于最后一条的新值
        ordered = list(reversed(changes))
        assert ordered[0]["old_value"] == "pending"
        for previous, current in zip(ordered, ordered[1:]):
            assert current["old_value"] == previous["new_value"]

        resp = await client.get(f"/api/tasks/{task_id}", headers=headers)
        task = resp.json()["task"]
        assert task["status"] == ordered[-1]["new_value"]
        assert (task["completed_at"] is not None) == (task["status"] == "completed")
