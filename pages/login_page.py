"""
登录页面对象

除了走 UI 的 login() 之外，还提供仅供测试使用的
bootstrap_authenticated_session()：直接写入 localStorage 登录标记，跳过登录表单。
"""
import json
from typing import Optional

from config import load_fixture_data, settings
from config._test_data import UserRecord
from pages.base_page import AuthState, BasePage
from pages.common_selector import page_heading
from pages.login_selector import email_input, error_message, login_button, password_input, signup_link
from utils.logger import logger, log_step


class LoginPage(BasePage):
    """登录页（/index.html）"""

    PATH = "/index.html"

    def __init__(self, page, base_url=None):
        super().__init__(page, base_url)
        self.email_input = self.element(email_input)
        self.password_input = self.element(password_input)
        self.login_button = self.element(login_button)
        self.signup_link = self.element(signup_link)
        self.error_message = self.element(error_message)
        self.page_title = self.element(page_heading)

    # ===== 页面操作方法 =====
    @log_step("UI 登录")
    def login(self, email: str, password: str) -> None:
        """
        通过登录表单登录

        Args:
            email: 登录邮箱
            password: 登录密码（日志中脱敏）
        """
        self.fill(self.email_input, email)
        self.fill(self.password_input, password)
        self.click(self.login_button)
        self.wait_for_page_load()

    def login_with_test_user(self) -> None:
        """使用测试数据中的默认账号登录"""
        user = load_fixture_data().users.valid
        self.login(user.email, user.password.get_secret_value())

    @log_step("点击注册链接")
    def click_signup(self) -> None:
        self.click(self.signup_link)
        self.wait_for_page_load()

    # ===== 查询 =====
    def is_login_successful(self) -> bool:
        """登录成功后会跳转到点评页或搜索页"""
        return self.url_contains("reviews.html", "search.html")

    def get_error_message(self) -> str:
        return self.get_text(self.error_message)

    def is_on_login_page(self) -> bool:
        return self.url_contains("index.html") or self.current_url().endswith("/")

    # ===== 测试后门 =====
    def bootstrap_authenticated_session(self, user: Optional[UserRecord] = None) -> AuthState:
        """
        仅供测试：不经过登录表单，直接写入应用识别的 localStorage 登录标记

        会先打开站点根路径，保证 localStorage 属于被测应用的 origin。

        Args:
            user: 登录用户，默认取测试数据中的 users.valid

        Returns:
            写入后读取到的会话状态
        """
        user = user or load_fixture_data().users.valid
        keys = settings.storage_keys

        self.goto("/")
        self.set_local_storage(keys.current_user, json.dumps(user.as_storage_payload()))
        self.set_local_storage(keys.is_logged_in, "true")

        state = self.session_state().auth_state
        logger.info(f"已注入登录会话: {user.email} -> {state.value}")
        return state

    def clear_auth_session(self) -> None:
        """清空 localStorage，回到未登录状态"""
        self.clear_local_storage()
        logger.info("已清除登录会话")
