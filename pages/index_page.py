"""
Fresh Reviews 首页页面对象
"""
from typing import List

from playwright.sync_api import Error as PlaywrightError

from pages.base_page import BasePage
from pages.common_selector import links, main_content, navigation_bar, page_heading
from pages.index_selector import hero_section, login_link, signup_link
from utils.logger import logger, log_step


class IndexPage(BasePage):
    """首页（/index.html）"""

    PATH = "/index.html"

    def __init__(self, page, base_url=None):
        super().__init__(page, base_url)
        self.page_title = self.element(page_heading)
        self.main_content = self.element(main_content)
        self.navigation_bar = self.element(navigation_bar)
        self.hero_section = self.element(hero_section)
        self.login_link = self.element(login_link)
        self.signup_link = self.element(signup_link)
        self.links = self.element(links)

    def is_on_index_page(self) -> bool:
        return self.url_contains("index.html") or self.current_url().endswith("/")

    # ===== 页面操作方法 =====
    @log_step("点击登录链接")
    def click_login(self) -> None:
        self.click(self.login_link)
        self.wait_for_page_load()

    @log_step("点击注册链接")
    def click_signup(self) -> None:
        self.click(self.signup_link)
        self.wait_for_page_load()

    # ===== 查询 =====
    def get_page_title_text(self) -> str:
        if self.is_visible(self.page_title):
            return self.get_text(self.page_title)
        return ""

    def is_navigation_bar_visible(self) -> bool:
        return self.is_visible(self.navigation_bar)

    def is_main_content_visible(self) -> bool:
        return self.is_visible(self.main_content)

    def is_hero_section_visible(self) -> bool:
        return self.is_visible(self.hero_section)

    def is_login_link_visible(self) -> bool:
        return self.is_visible(self.login_link)

    def is_signup_link_visible(self) -> bool:
        return self.is_visible(self.signup_link)

    def link_hrefs(self) -> List[str]:
        """页面上所有链接的 href（用于断链检查）"""
        try:
            return self.links.locator.evaluate_all("(els) => els.map(e => e.getAttribute('href'))")
        except PlaywrightError as e:
            logger.debug(f"读取链接失败: {e}")
            return []
