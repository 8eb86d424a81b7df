"""
带重试的页面动作执行器

- click: 瞬时失败（不可交互、已分离、导航中、超时）按固定间隔重试
- fill / press / check: 单次尝试，超时转换为 ElementTimeoutError
- select_single: 先做取值校验，再勾选对应选项

执行器不等待导航，页面对象在工作流结束时显式等待页面稳定。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Optional

from playwright.sync_api import Page, TimeoutError as PlaywrightTimeoutError, Error as PlaywrightError

from config import settings
from utils.logger import logger
from utils.exceptions import ActionExhaustedError, ElementTimeoutError, ValidationRejectedError
from utils.selector_helper import DescriptorLike, LiveElement, as_descriptor

MASK = "******"


class ActionStatus(Enum):
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class ActionOutcome:
    """一次动作的结果，即用即弃"""
    status: ActionStatus
    attempts: int
    last_error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ActionStatus.SUCCESS


class ResilientActionExecutor:
    """
    Args:
        page: 当前页面
        action_timeout_ms: 单次动作超时，默认 settings.timeouts.action
        backoff_ms: 点击重试间隔（固定，不做指数增长），默认 settings.timeouts.click_backoff
        max_attempts: 点击最大尝试次数，默认 settings.retry.click_attempts
    """

    def __init__(
            self,
            page: Page,
            action_timeout_ms: Optional[int] = None,
            backoff_ms: Optional[int] = None,
            max_attempts: Optional[int] = None,
    ):
        self.page = page
        self.action_timeout_ms = settings.timeouts.action if action_timeout_ms is None else action_timeout_ms
        self.backoff_ms = settings.timeouts.click_backoff if backoff_ms is None else backoff_ms
        self.max_attempts = settings.retry.click_attempts if max_attempts is None else max_attempts

    def click(self, element: LiveElement, max_attempts: Optional[int] = None) -> ActionOutcome:
        """
        点击元素，失败后固定间隔重试

        Args:
            element: 目标元素
            max_attempts: 最大尝试次数（>=1）

        Raises:
            ActionExhaustedError: 连续 max_attempts 次失败，__cause__ 为最后一次错误
        """
        max_attempts = self.max_attempts if max_attempts is None else max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts 必须至少为1, 当前: {max_attempts}")

        last_error: Optional[PlaywrightError] = None
        for attempt in range(1, max_attempts + 1):
            try:
                element.first.click(timeout=self.action_timeout_ms)
                logger.info(f"点击: {element.description} (第 {attempt} 次尝试)")
                return ActionOutcome(ActionStatus.SUCCESS, attempt)
            except PlaywrightError as e:
                last_error = e
                logger.warning(
                    f"点击失败: {element.description} (第 {attempt}/{max_attempts} 次) - {_first_line(e)}"
                )
                if attempt < max_attempts:
                    self.page.wait_for_timeout(self.backoff_ms)

        outcome = ActionOutcome(ActionStatus.EXHAUSTED, max_attempts, last_error)
        logger.error(f"点击重试耗尽: {element.description} ({max_attempts} 次)")
        raise ActionExhaustedError(
            f"click: 元素 '{element.description}' 在 {max_attempts} 次尝试后仍无法点击", outcome
        ) from last_error

    def fill(self, element: LiveElement, value: str) -> ActionOutcome:
        """先清空再填写，单次尝试"""
        shown = MASK if element.sensitive else value
        try:
            target = element.first
            target.clear(timeout=self.action_timeout_ms)
            target.fill(value, timeout=self.action_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(
                f"fill: 元素 '{element.description}' 在 {self.action_timeout_ms}ms 内不可填写",
                element.description, self.action_timeout_ms,
            ) from e
        logger.info(f"填写: {element.description} = {shown!r}")
        return ActionOutcome(ActionStatus.SUCCESS, 1)

    def clear(self, element: LiveElement) -> ActionOutcome:
        try:
            element.first.clear(timeout=self.action_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(
                f"clear: 元素 '{element.description}' 在 {self.action_timeout_ms}ms 内不可清空",
                element.description, self.action_timeout_ms,
            ) from e
        logger.debug(f"清空: {element.description}")
        return ActionOutcome(ActionStatus.SUCCESS, 1)

    def press(self, element: LiveElement, key: str) -> ActionOutcome:
        try:
            element.first.press(key, timeout=self.action_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(
                f"press: 元素 '{element.description}' 在 {self.action_timeout_ms}ms 内无法按键 {key}",
                element.description, self.action_timeout_ms,
            ) from e
        logger.info(f"按键: {element.description} <- {key}")
        return ActionOutcome(ActionStatus.SUCCESS, 1)

    def select_single(self, option_descriptor: DescriptorLike, value: Any, valid_values: Collection[int]) -> ActionOutcome:
        """
        勾选单选组中与 value 对应的选项

        Args:
            option_descriptor: 带 {value} 占位符的选项描述符
            value: 目标取值，必须是 valid_values 中的整数
            valid_values: 合法取值集合

        Raises:
            ValidationRejectedError: 取值非法（在任何 DOM 交互之前）
        """
        if isinstance(value, bool) or not isinstance(value, int) or value not in valid_values:
            bounds = sorted(valid_values)
            raise ValidationRejectedError(
                f"select_single: 取值 {value!r} 不合法, 必须是 {bounds[0]}..{bounds[-1]} 之间的整数"
                if bounds else f"select_single: 取值 {value!r} 不合法"
            )

        option = LiveElement(self.page, as_descriptor(option_descriptor).formatted(value=value))
        try:
            option.first.check(timeout=self.action_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(
                f"select_single: 选项 '{option.description}' 在 {self.action_timeout_ms}ms 内无法勾选",
                option.description, self.action_timeout_ms,
            ) from e
        logger.info(f"选择: {option.description}")
        return ActionOutcome(ActionStatus.SUCCESS, 1)

    @staticmethod
    def is_checked(element: LiveElement) -> bool:
        """读取勾选状态；元素不存在或出错时为 False"""
        try:
            if element.count() == 0:
                return False
            return element.first.is_checked(timeout=1000)
        except PlaywrightError:
            return False


def _first_line(error: BaseException) -> str:
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__
