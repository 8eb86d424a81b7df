"""
BasePage - Page Object Pattern 基类

组合 LiveElement（定位）、VisibilityProbe（可见性探测）与
ResilientActionExecutor（带重试的动作）为页面工作流提供统一入口。
所有页面对象类应继承此类。

约定：
- 查询类方法（is_* / get_*）不抛异常，失败时降级为 False / "" / 0
- 工作流方法在动作后显式调用 wait_for_page_load 等待页面稳定
"""
from __future__ import annotations

import json
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Collection
from urllib.parse import urljoin

import allure
from playwright.sync_api import Page, Response, ConsoleMessage, Error as PlaywrightError

from config import settings
from utils.actions import ActionOutcome, ResilientActionExecutor
from utils.helpers import get_timestamp
from utils.logger import logger
from utils.selector_helper import DescriptorLike, LiveElement
from utils.visibility import VisibilityProbe


class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class SessionState:
    """单个用例内的会话快照（读取自浏览器，不持久化）"""
    base_url: str
    url: str
    viewport: Optional[Dict[str, int]]
    current_user: Optional[Dict[str, Any]]
    is_logged_in: Optional[str]

    @property
    def auth_state(self) -> AuthState:
        if self.is_logged_in == "true" and self.current_user:
            return AuthState.AUTHENTICATED
        return AuthState.UNAUTHENTICATED


class BasePage:
    """页面对象基类 - 封装通用的页面操作方法"""

    # 子类覆盖为页面入口路径
    PATH = "/"

    def __init__(self, page: Page, base_url: Optional[str] = None):
        """
        初始化 BasePage

        Args:
            page: Playwright Page 对象
            base_url: 基础 URL（默认取 settings.base_url）
        """
        self.page = page
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.probe = VisibilityProbe(page)
        self.actions = ResilientActionExecutor(page)

        # 页面元数据
        self._page_name = self.__class__.__name__
        self._load_time: Optional[float] = None
        self._console_errors: List[str] = []
        page.on("console", self._collect_console_error)

    def element(self, descriptor: DescriptorLike) -> LiveElement:
        """绑定描述符到当前页面，返回惰性句柄"""
        return LiveElement(self.page, descriptor)

    # ==================== 导航相关方法 ====================

    def goto(self, path: str = "", timeout: Optional[int] = None, wait_until: str = "domcontentloaded") -> Optional[Response]:
        """
        导航到指定路径

        Args:
            path: 相对 base_url 的路径，或完整 URL
            timeout: 超时时间（毫秒），默认 settings.timeouts.navigation
            wait_until: 等待状态（"load" | "domcontentloaded" | "networkidle" | "commit"）
        """
        url = path if path.startswith(("http://", "https://")) else urljoin(self.base_url + "/", path.lstrip("/"))
        logger.info(f"Navigate to: {url}")

        start_time = time.time()
        timeout = settings.timeouts.navigation if timeout is None else timeout
        response = self.page.goto(url, timeout=timeout, wait_until=wait_until)
        self._load_time = time.time() - start_time

        logger.info(f"Page loaded in {self._load_time:.2f}s")
        return response

    def navigate(self) -> None:
        """打开本页面并等待网络空闲"""
        with allure.step(f"打开 {self._page_name} ({self.PATH})"):
            self.goto(self.PATH)
            self.wait_for_page_load()

    def wait_for_page_load(self, timeout: Optional[int] = None) -> None:
        """等待网络空闲，工作流结束时的统一收敛步骤"""
        self.page.wait_for_load_state("networkidle", timeout=settings.timeouts.navigation if timeout is None else timeout)

    def reload(self) -> Optional[Response]:
        """刷新当前页面"""
        logger.info("Reloading page...")
        return self.page.reload(wait_until="networkidle", timeout=settings.timeouts.navigation)

    def go_back(self) -> Optional[Response]:
        """返回上一页"""
        logger.info("Going back...")
        return self.page.go_back(wait_until="networkidle", timeout=settings.timeouts.navigation)

    def current_url(self) -> str:
        return self.page.url

    def title(self) -> str:
        return self.page.title()

    def url_contains(self, *fragments: str) -> bool:
        url = self.current_url()
        return any(fragment in url for fragment in fragments)

    # ==================== 查询（不抛异常） ====================

    def is_visible(self, target: Any, timeout_ms: Optional[int] = None) -> bool:
        """
        元素在超时内是否可见

        Args:
            target: LiveElement 或 ElementDescriptor
            timeout_ms: 探测超时，默认 settings.timeouts.visibility
        """
        return self.probe.is_visible(self._live(target), timeout_ms)

    def _ready_to_read(self, element: LiveElement, timeout_ms: Optional[int]) -> bool:
        # 超时内未变为可见时，只要元素已挂载仍然读取（隐藏元素的文本）
        return self.probe.is_visible(element, timeout_ms) or element.count() > 0

    def get_text(self, target: Any, timeout_ms: Optional[int] = None) -> str:
        """
        元素文本；超时内元素未出现或读取失败时返回空字符串

        Args:
            target: LiveElement 或 ElementDescriptor
            timeout_ms: 等待元素出现的超时，默认 settings.timeouts.visibility
        """
        element = self._live(target)
        if not self._ready_to_read(element, timeout_ms):
            return ""
        try:
            return (element.first.text_content(timeout=settings.timeouts.action) or "").strip()
        except PlaywrightError as e:
            logger.debug(f"get_text failed for {element.description}: {e}")
            return ""

    def get_input_value(self, target: Any, timeout_ms: Optional[int] = None) -> str:
        element = self._live(target)
        if not self._ready_to_read(element, timeout_ms):
            return ""
        try:
            return element.first.input_value(timeout=settings.timeouts.action)
        except PlaywrightError as e:
            logger.debug(f"get_input_value failed for {element.description}: {e}")
            return ""

    def get_count(self, target: Any) -> int:
        return self._live(target).count()

    def exists(self, target: Any) -> bool:
        return self.get_count(target) > 0

    def is_checked(self, target: Any) -> bool:
        return self.actions.is_checked(self._live(target))

    # ==================== 动作 ====================

    def click(self, target: Any, max_attempts: Optional[int] = None) -> ActionOutcome:
        return self.actions.click(self._live(target), max_attempts=max_attempts)

    def fill(self, target: Any, value: str) -> ActionOutcome:
        return self.actions.fill(self._live(target), value)

    def clear(self, target: Any) -> ActionOutcome:
        return self.actions.clear(self._live(target))

    def press(self, target: Any, key: str) -> ActionOutcome:
        return self.actions.press(self._live(target), key)

    def select_single(self, option_descriptor: DescriptorLike, value: Any, valid_values: Collection[int]) -> ActionOutcome:
        return self.actions.select_single(option_descriptor, value, valid_values)

    # ==================== 等待辅助方法 ====================

    def wait_for_element(self, target: Any, timeout_ms: Optional[int] = None) -> None:
        """硬等待元素可见，超时抛出 ElementTimeoutError"""
        self.probe.wait_until_visible(self._live(target), settings.timeouts.action if timeout_ms is None else timeout_ms)

    def wait_for_element_hidden(self, target: Any, timeout_ms: Optional[int] = None) -> None:
        self.probe.wait_until_hidden(self._live(target), settings.timeouts.action if timeout_ms is None else timeout_ms)

    def wait(self, ms: int) -> None:
        """固定等待（毫秒）"""
        self.page.wait_for_timeout(ms)

    # ==================== localStorage 与会话 ====================

    def get_local_storage(self, key: str) -> Optional[str]:
        return self.page.evaluate("(k) => localStorage.getItem(k)", key)

    def set_local_storage(self, key: str, value: str) -> None:
        self.page.evaluate("([k, v]) => localStorage.setItem(k, v)", [key, value])

    def clear_local_storage(self) -> None:
        self.page.evaluate("() => localStorage.clear()")

    def session_state(self) -> SessionState:
        """读取当前会话状态；storage 不可访问（如 about:blank）时视为未登录"""
        keys = settings.storage_keys
        try:
            raw_user = self.get_local_storage(keys.current_user)
            is_logged_in = self.get_local_storage(keys.is_logged_in)
        except PlaywrightError as e:
            logger.debug(f"localStorage unavailable on {self.page.url}: {e}")
            raw_user, is_logged_in = None, None

        current_user = None
        if raw_user:
            try:
                current_user = json.loads(raw_user)
            except json.JSONDecodeError:
                logger.warning(f"{keys.current_user} 不是合法 JSON: {raw_user[:100]}")

        return SessionState(
            base_url=self.base_url,
            url=self.page.url,
            viewport=self.viewport_size(),
            current_user=current_user,
            is_logged_in=is_logged_in,
        )

    # ==================== 对话框 / 视口 / 上下文 ====================

    def accept_dialog(self) -> None:
        """下一次弹出的对话框自动确认"""
        self.page.once("dialog", lambda dialog: dialog.accept())

    def dismiss_dialog(self) -> None:
        self.page.once("dialog", lambda dialog: dialog.dismiss())

    def viewport_size(self) -> Optional[Dict[str, int]]:
        return self.page.viewport_size

    def set_viewport_size(self, width: int, height: int) -> None:
        self.page.set_viewport_size({"width": width, "height": height})

    def grant_permissions(self, permissions: List[str]) -> None:
        self.page.context.grant_permissions(permissions)

    def set_geolocation(self, latitude: float, longitude: float) -> None:
        self.page.context.set_geolocation({"latitude": latitude, "longitude": longitude})

    # ==================== 截图与调试 ====================

    def take_screenshot(self, name: str, full_page: bool = True) -> str:
        """截图保存到 settings.allure.screenshot_dir 并附加到 Allure"""
        screenshot_dir = settings.allure.screenshot_dir
        screenshot_dir.mkdir(parents=True, exist_ok=True)
        path = screenshot_dir / f"{name}_{get_timestamp()}.png"
        content = self.page.screenshot(path=str(path), full_page=full_page)
        allure.attach(content, name=name, attachment_type=allure.attachment_type.PNG)
        logger.info(f"Screenshot saved: {path}")
        return str(path)

    @contextmanager
    def auto_screenshot_on_error(self, name: str = "operation"):
        """
        上下文管理器：操作失败时自动截图后继续抛出

        Usage:
            with reviews_page.auto_screenshot_on_error("submit_review"):
                reviews_page.submit_review()
        """
        try:
            yield
        except Exception as e:
            logger.error(f"{name} failed: {e}")
            try:
                self.take_screenshot(f"{name}_failure")
            except (PlaywrightError, OSError) as screenshot_error:
                logger.error(f"Failed to take screenshot: {screenshot_error}")
            raise

    def console_errors(self) -> List[str]:
        """页面对象创建以来浏览器 console 中的 error 消息"""
        return list(self._console_errors)

    def _collect_console_error(self, msg: ConsoleMessage) -> None:
        if msg.type == "error":
            self._console_errors.append(msg.text)

    def debug_info(self, target: Any) -> Dict[str, Any]:
        """元素调试信息（解析结果、匹配数量、可见性）"""
        element = self._live(target)
        _locator, info = element.resolve_with_info()
        try:
            visible = element.first.is_visible()
        except PlaywrightError:
            visible = False
        return {
            "description": element.description,
            "strategies": [str(s) for s in element.descriptor.strategies],
            "resolve": info.to_dict(),
            "count": element.count(),
            "visible": visible,
            "url": self.page.url,
        }

    def get_page_load_time(self) -> Optional[float]:
        return self._load_time

    def _live(self, target: Any) -> LiveElement:
        return target if isinstance(target, LiveElement) else self.element(target)

    def __repr__(self) -> str:
        return f"{self._page_name}(url={self.page.url!r})"
