"""
可见性探测

按固定间隔轮询 LiveElement（每次轮询都重新解析策略），
is_visible 永不抛异常，wait_until_* 超时抛出 ElementTimeoutError。
"""
import logging
import time
from typing import Callable, Optional

from playwright.sync_api import Page, Error as PlaywrightError

from config import settings
from utils.exceptions import ElementTimeoutError
from utils.selector_helper import LiveElement

logger = logging.getLogger(__name__)


class VisibilityProbe:
    """
    Args:
        page: 用于轮询间隔等待（page.wait_for_timeout 会继续分发浏览器事件）
        poll_interval_ms: 轮询间隔，默认取 settings.timeouts.poll_interval
        default_timeout_ms: 默认超时，默认取 settings.timeouts.visibility
        clock: 单调时钟（秒），测试中可替换
    """

    def __init__(
            self,
            page: Page,
            poll_interval_ms: Optional[int] = None,
            default_timeout_ms: Optional[int] = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.page = page
        self.poll_interval_ms = settings.timeouts.poll_interval if poll_interval_ms is None else poll_interval_ms
        self.default_timeout_ms = settings.timeouts.visibility if default_timeout_ms is None else default_timeout_ms
        self._clock = clock

    # ==================== 查询 ====================

    def is_visible(self, element: LiveElement, timeout_ms: Optional[int] = None) -> bool:
        """元素在超时内变为可见返回 True，否则 False（不抛异常）"""
        visible = self._poll(element, self._visible_now, timeout_ms)
        logger.debug("is_visible(%s) -> %s", element.description, visible)
        return visible

    def is_hidden(self, element: LiveElement, timeout_ms: Optional[int] = None) -> bool:
        return self._poll(element, lambda el: not self._visible_now(el), timeout_ms)

    # ==================== 硬等待 ====================

    def wait_until_visible(self, element: LiveElement, timeout_ms: Optional[int] = None) -> None:
        timeout_ms = self._timeout(timeout_ms)
        if not self._poll(element, self._visible_now, timeout_ms):
            raise ElementTimeoutError(
                f"wait_until_visible: 元素 '{element.description}' 在 {timeout_ms}ms 内不可见",
                element.description, timeout_ms,
            )

    def wait_until_hidden(self, element: LiveElement, timeout_ms: Optional[int] = None) -> None:
        timeout_ms = self._timeout(timeout_ms)
        if not self._poll(element, lambda el: not self._visible_now(el), timeout_ms):
            raise ElementTimeoutError(
                f"wait_until_hidden: 元素 '{element.description}' 在 {timeout_ms}ms 内未隐藏",
                element.description, timeout_ms,
            )

    # ==================== 内部 ====================

    @staticmethod
    def _visible_now(element: LiveElement) -> bool:
        try:
            return element.first.is_visible()
        except PlaywrightError:
            return False

    def _timeout(self, timeout_ms: Optional[int]) -> int:
        return self.default_timeout_ms if timeout_ms is None else timeout_ms

    def _poll(self, element: LiveElement, predicate: Callable[[LiveElement], bool], timeout_ms: Optional[int]) -> bool:
        return self.until(lambda: predicate(element), timeout_ms)

    # ==================== 条件轮询 ====================

    def until(self, condition: Callable[[], bool], timeout_ms: Optional[int] = None) -> bool:
        """
        按轮询间隔反复求值 condition，直到为真或超时

        timeout_ms=0 只检查一次。condition 抛出的 PlaywrightError 视为 False。
        """
        deadline = self._clock() + self._timeout(timeout_ms) / 1000
        while True:
            try:
                if condition():
                    return True
            except PlaywrightError as e:
                logger.debug("until: condition raised %s", e)
            remaining_ms = round((deadline - self._clock()) * 1000)
            if remaining_ms <= 0:
                return False
            try:
                self.page.wait_for_timeout(min(self.poll_interval_ms, remaining_ms))
            except PlaywrightError:
                # 页面已关闭
                return False
