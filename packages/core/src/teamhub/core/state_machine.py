"""状态机流转 -- 流转校验 + completed_at 副作用

进入 completed 设置完成时间；离开 completed 清除完成时间；
其他流转不触碰完成时间。
"""

from datetime import datetime
from typing import NamedTuple

from .exceptions import InvalidTransitionError, ValidationError
from .models.enums import TaskStatus, validate_transition


class StatusTransition(NamedTuple):
    """一次状态流转的计算结果"""

    from_status: TaskStatus
    to_status: TaskStatus
    completed_at: datetime | None

    @property
    def changed(self) -> bool:
        return self.from_status != self.to_status


def coerce_status(value: TaskStatus | str) -> TaskStatus:
    """将字符串转换为 TaskStatus，非法值抛出 ValidationError"""
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(
            f"Unknown task status '{value}', expected one of: {allowed}"
        ) from e


def plan_transition(
    current: TaskStatus,
    target: TaskStatus,
    current_completed_at: datetime | None,
    now: datetime,
    strict: bool = False,
) -> StatusTransition:
    """计算状态流转及其 completed_at 副作用

    Args:
        current: 当前状态
        target: 目标状态
        current_completed_at: 当前完成时间
        now: 当前时间
        strict: 为 True 时按 VALID_TRANSITIONS 校验

    Raises:
        InvalidTransitionError: 严格模式下流转不合法
    """
    if strict and current != target and not validate_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)

    if target == TaskStatus.COMPLETED:
        # completed -> completed 不算“进入”，保留原完成时间
        if current == TaskStatus.COMPLETED and current_completed_at is not None:
            completed_at = current_completed_at
        else:
            completed_at = now
    else:
        completed_at = None

    return StatusTransition(
        from_status=current,
        to_status=target,
        completed_at=completed_at,
    )
