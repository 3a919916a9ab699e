"""TeamHub 异常体系

三类错误：
- ValidationError: 输入不合法（调用方错误，不重试）
- NotFoundError: 引用的任务或分配关系不存在
- StorageError: 存储层不可用或查询失败（调用方可退避重试，引擎自身不重试）
"""


class TeamHubError(Exception):
    """TeamHub 基础异常"""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Args:
            message: 错误描述
            code: 稳定错误码，未指定时使用类默认值
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(TeamHubError):
    """输入校验失败：缺少必填字段、非法枚举值、引用不存在的用户或项目"""

    code = "VALIDATION_ERROR"


class InvalidTransitionError(ValidationError):
    """严格模式下的非法状态流转"""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(f"Cannot transition task from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class NotFoundError(TeamHubError):
    """主任务或分配关系不存在"""

    code = "NOT_FOUND"

    @classmethod
    def task(cls, task_id: str) -> "NotFoundError":
        return cls(f"Task with id {task_id} does not exist", code="TASK_NOT_FOUND")

    @classmethod
    def assignment(cls, task_id: str, user_id: str) -> "NotFoundError":
        return cls(
            f"User {user_id} is not assigned to task {task_id}",
            code="ASSIGNMENT_NOT_FOUND",
        )


class StorageError(TeamHubError):
    """存储层失败

    业务变更已回滚；调用方可自行退避重试。
    """

    code = "STORAGE_ERROR"

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error
