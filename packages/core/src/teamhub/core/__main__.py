"""CLI 入口模块 -- python -m teamhub.core <command>

支持的命令：
  init-db           创建数据库表结构
  check-invariants  扫描 completed_at 不变式违规与孤立分配记录
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m teamhub.core <command>")
        print("命令:")
        print("  init-db           创建数据库表结构")
        print("  check-invariants  扫描不变式违规记录")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "check-invariants":
        violations = asyncio.run(check_invariants())
        sys.exit(1 if violations else 0)
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, check-invariants")
        sys.exit(1)


async def init_database() -> None:
    """创建数据库（表结构在 create_store_group 中初始化）"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    await store_group.conn.close()
    print("初始化完成")


async def check_invariants() -> int:
    """扫描修复报告

    Returns:
        违规记录总数
    """
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    try:
        completion = await store_group.task_store.find_completion_violations()
        orphans = await store_group.assignee_registry.find_orphans()
    finally:
        await store_group.conn.close()

    for task_id in completion:
        print(f"completed_at 不一致: {task_id}")
    for task_id, user_id in orphans:
        print(f"孤立分配记录: task={task_id} user={user_id}")

    total = len(completion) + len(orphans)
    print(f"检查完成，发现 {total} 条违规记录")
    return total


if __name__ == "__main__":
    main()
