"""
页面交互层异常

所有异常都以 SelectorError 为根，消息中包含操作名和元素描述，
失败时可以直接定位到具体的页面元素。
"""
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from utils.actions import ActionOutcome


class SelectorError(Exception):
    """定位 / 交互相关错误的基类"""
    pass


class InvalidDescriptorError(SelectorError):
    """ElementDescriptor 没有任何定位策略"""
    pass


class ElementNotFoundError(SelectorError):
    """严格查找时元素不存在（查询类方法会把它降级为 False / 空值）"""

    def __init__(self, message: str, description: Optional[str] = None):
        super().__init__(message)
        self.description = description


class ElementTimeoutError(SelectorError):
    """在超时时间内元素没有达到期望状态"""

    def __init__(self, message: str, description: Optional[str] = None, timeout_ms: Optional[int] = None):
        super().__init__(message)
        self.description = description
        self.timeout_ms = timeout_ms


class ActionExhaustedError(SelectorError):
    """
    重试次数耗尽

    最后一次底层错误既作为 __cause__ 链接，也保存在 last_error 上。
    """

    def __init__(self, message: str, outcome: "ActionOutcome"):
        super().__init__(message)
        self.outcome = outcome

    @property
    def attempts(self) -> int:
        return self.outcome.attempts

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.outcome.last_error


class ValidationRejectedError(SelectorError, ValueError):
    """业务前置校验失败，在任何 DOM 交互之前抛出"""
    pass
