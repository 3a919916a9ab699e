"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、列表分页默认值，以及任务生命周期引擎的行为开关。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TEAMHUB_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TEAMHUB_DB_PATH",
        str(_get_base_dir() / "sqlite" / "teamhub.db"),
    )


# 列表查询单页上限
MAX_LIST_LIMIT: int = 500

# 列表查询默认单页大小
DEFAULT_LIST_LIMIT: int = min(
    int(os.environ.get("TEAMHUB_LIST_DEFAULT_LIMIT", "50")),
    MAX_LIST_LIMIT,
)

# 级联分配与系统操作使用的操作者标识
SYSTEM_ACTOR: str = "system"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class EngineConfig(BaseModel):
    """任务生命周期引擎行为开关 -- 从环境变量加载

    环境变量:
        TEAMHUB_STRICT_TRANSITIONS: 是否强制状态流转图（默认 false）
        TEAMHUB_VALIDATE_ASSIGNEES: 分配前是否校验用户存在（默认 true）
        TEAMHUB_AUDIT_ASSIGNEES: 负责人变更是否写入历史（默认 false）
    """

    strict_transitions: bool = Field(
        default=False,
        description="为 True 时非法状态流转抛出 InvalidTransitionError",
    )
    validate_assignees: bool = Field(
        default=True,
        description="为 True 时分配负责人前校验用户存在",
    )
    audit_assignee_changes: bool = Field(
        default=False,
        description="为 True 时负责人增删写入 assignee_added/assignee_removed 历史",
    )


def _parse_bool_env(env_var: str) -> bool | None:
    """解析布尔环境变量，未设置或无效时返回 None"""
    val = os.environ.get(env_var)
    if val is None or val == "":
        return None
    normalized = val.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    log.warning(
        "invalid_bool_config",
        env_var=env_var,
        value=val,
    )
    # 使用默认值，不阻塞启动
    return None


def load_engine_config() -> EngineConfig:
    """从环境变量加载引擎配置

    环境变量映射:
        TEAMHUB_STRICT_TRANSITIONS -> strict_transitions
        TEAMHUB_VALIDATE_ASSIGNEES -> validate_assignees
        TEAMHUB_AUDIT_ASSIGNEES -> audit_assignee_changes
    """
    kwargs: dict = {}

    if (val := _parse_bool_env("TEAMHUB_STRICT_TRANSITIONS")) is not None:
        kwargs["strict_transitions"] = val

    if (val := _parse_bool_env("TEAMHUB_VALIDATE_ASSIGNEES")) is not None:
        kwargs["validate_assignees"] = val

    if (val := _parse_bool_env("TEAMHUB_AUDIT_ASSIGNEES")) is not None:
        kwargs["audit_assignee_changes"] = val

    return EngineConfig(**kwargs)
