"""
搜索页面对象
"""
from pages.base_page import BasePage
from pages.common_selector import main_content, navigation_bar
from pages.search_selector import (
    filter_section,
    loading_indicator,
    no_results_message,
    search_button,
    search_input,
    search_result_items,
    search_results,
)
from utils.logger import logger, log_duration, log_step


class SearchPage(BasePage):
    """搜索页（/search.html）"""

    PATH = "/search.html"

    def __init__(self, page, base_url=None):
        super().__init__(page, base_url)
        self.search_input = self.element(search_input)
        self.search_button = self.element(search_button)
        self.search_results = self.element(search_results)
        self.search_result_items = self.element(search_result_items)
        self.filter_section = self.element(filter_section)
        self.no_results_message = self.element(no_results_message)
        self.main_content = self.element(main_content)
        self.navigation_bar = self.element(navigation_bar)
        self.loading_indicator = self.element(loading_indicator)

    def is_on_search_page(self) -> bool:
        return self.url_contains("search.html")

    # ===== 页面操作方法 =====
    @log_step("搜索")
    def search(self, query: str) -> None:
        """
        输入关键词并提交

        没有搜索按钮时按 Enter 提交；页面没有搜索框时不做任何操作。

        Args:
            query: 搜索关键词
        """
        if not self.is_visible(self.search_input):
            logger.warning("搜索框不可见，跳过搜索")
            return

        self.fill(self.search_input, query)
        if self.is_visible(self.search_button):
            self.click(self.search_button)
        else:
            self.press(self.search_input, "Enter")
        self.wait_for_page_load()

    def wait_for_search_complete(self) -> None:
        """加载指示器出现时等待其消失，再等待网络空闲"""
        with log_duration("等待搜索完成"):
            if self.is_visible(self.loading_indicator):
                self.wait_for_element_hidden(self.loading_indicator)
            self.wait_for_page_load()

    # ===== 查询 =====
    def are_search_results_visible(self) -> bool:
        return self.is_visible(self.search_results)

    def is_no_results_message_visible(self) -> bool:
        return self.is_visible(self.no_results_message)

    def is_filter_section_visible(self) -> bool:
        return self.is_visible(self.filter_section)

    def is_navigation_bar_visible(self) -> bool:
        return self.is_visible(self.navigation_bar)

    def is_main_content_visible(self) -> bool:
        return self.is_visible(self.main_content)

    def is_search_input_visible(self) -> bool:
        return self.is_visible(self.search_input)

    def get_search_results_count(self) -> int:
        if self.are_search_results_visible():
            return self.search_result_items.count()
        return 0
