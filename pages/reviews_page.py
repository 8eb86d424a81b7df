"""
点评页面对象

覆盖点评表单、位置筛选（开关 / 邮编搜索）和点评列表。
"""
from typing import Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError

from config import load_fixture_data, settings
from pages.base_page import BasePage
from pages.common_selector import navigation_bar
from pages.reviews_selector import (
    card_food_item,
    card_rating,
    card_restaurant,
    card_review_text,
    checked_rating,
    food_item_input,
    location_status,
    location_toggle,
    logout_button,
    nearby_restaurants_header,
    rating_option,
    rating_options,
    restaurant_name_input,
    review_cards,
    review_error,
    review_form,
    review_success,
    review_textarea,
    reviews_list,
    search_zip_button,
    submit_button,
    toggle_status_text,
    user_name_display,
    zip_code_input,
)
from utils.actions import ActionOutcome
from utils.logger import logger, log_step
from utils.selector_helper import ElementDescriptor, LiveElement

# 读取 HTML5 约束校验信息
_VALIDATION_MESSAGE_JS = "(el) => el.validity.valid ? null : el.validationMessage"


class ReviewsPage(BasePage):
    """点评页（/reviews.html），需要登录"""

    PATH = "/reviews.html"

    def __init__(self, page, base_url=None):
        super().__init__(page, base_url)
        self.valid_ratings = load_fixture_data().ratings.valid_values

        self.navigation_bar = self.element(navigation_bar)
        self.user_name_display = self.element(user_name_display)
        self.logout_button = self.element(logout_button)

        self.review_form = self.element(review_form)
        self.restaurant_name_input = self.element(restaurant_name_input)
        self.food_item_input = self.element(food_item_input)
        self.rating_options = self.element(rating_options)
        self.checked_rating = self.element(checked_rating)
        self.review_textarea = self.element(review_textarea)
        self.submit_button = self.element(submit_button)
        self.review_error = self.element(review_error)
        self.review_success = self.element(review_success)

        self.location_toggle = self.element(location_toggle)
        self.toggle_status_text = self.element(toggle_status_text)
        self.zip_code_input = self.element(zip_code_input)
        self.search_zip_button = self.element(search_zip_button)
        self.location_status = self.element(location_status)

        self.reviews_list = self.element(reviews_list)
        self.review_cards = self.element(review_cards)
        self.nearby_restaurants_header = self.element(nearby_restaurants_header)

    # ==================== 会话 ====================

    def is_authenticated(self) -> bool:
        """已登录时页面显示退出按钮"""
        return self.is_visible(self.logout_button)

    def get_user_name(self) -> str:
        return self.get_text(self.user_name_display)

    @log_step("退出登录")
    def logout(self) -> None:
        self.click(self.logout_button)
        self.wait_for_page_load()

    # ==================== 点评表单 ====================

    def fill_review_form(self, restaurant_name: str, food_item: str, rating: int, review_text: str) -> None:
        """
        填写完整表单（不提交）

        Args:
            restaurant_name: 餐厅名称
            food_item: 菜品
            rating: 评分，必须在 1..5 之间
            review_text: 点评正文
        """
        self.fill(self.restaurant_name_input, restaurant_name)
        self.fill(self.food_item_input, food_item)
        self.select_rating(rating)
        self.fill(self.review_textarea, review_text)

    def select_rating(self, rating: int) -> ActionOutcome:
        """
        勾选评分

        Raises:
            ValidationRejectedError: 评分不在合法范围内（不会触碰页面）
        """
        return self.select_single(rating_option, rating, self.valid_ratings)

    def get_selected_rating(self) -> Optional[int]:
        """当前选中的评分，未选中时为 None"""
        if self.checked_rating.count() == 0:
            return None
        try:
            value = self.checked_rating.first.get_attribute("value", timeout=settings.timeouts.action)
        except PlaywrightError:
            return None
        return int(value) if value and value.isdigit() else None

    def get_checked_rating_count(self) -> int:
        """被选中的评分选项数量（单选组应当最多为 1）"""
        return self.checked_rating.count()

    def is_rating_checked(self, rating: int) -> bool:
        return self.is_checked(rating_option.formatted(value=rating))

    @log_step("提交点评")
    def submit_review(self) -> None:
        self.click(self.submit_button)
        self.wait(settings.timeouts.submit_settle)

    def submit_complete_review(self, restaurant_name: str, food_item: str, rating: int, review_text: str) -> None:
        self.fill_review_form(restaurant_name, food_item, rating, review_text)
        self.submit_review()

    def is_success_message_visible(self) -> bool:
        return self.is_visible(self.review_success)

    def get_success_message(self) -> str:
        return self.get_text(self.review_success)

    def is_error_message_visible(self) -> bool:
        return self.is_visible(self.review_error)

    def get_error_message(self) -> str:
        return self.get_text(self.review_error)

    def is_form_empty(self) -> bool:
        return (
            not self.get_input_value(self.restaurant_name_input)
            and not self.get_input_value(self.food_item_input)
            and not self.get_input_value(self.review_textarea)
            and self.get_selected_rating() is None
        )

    def clear_form(self) -> None:
        """清空输入并取消所有评分勾选"""
        self.clear(self.restaurant_name_input)
        self.clear(self.food_item_input)
        self.clear(self.review_textarea)
        if self.get_selected_rating() is not None:
            self.rating_options.locator.evaluate_all("(els) => els.forEach(e => { e.checked = false; })")

    def get_form_validation_errors(self) -> List[str]:
        """HTML5 约束校验未通过的字段提示"""
        errors = []
        for element in (self.restaurant_name_input, self.food_item_input, self.review_textarea):
            if element.count() == 0:
                continue
            try:
                message = element.first.evaluate(_VALIDATION_MESSAGE_JS)
            except PlaywrightError as e:
                logger.debug(f"读取校验信息失败 {element.description}: {e}")
                continue
            if message:
                errors.append(message)
        return errors

    # ==================== 位置功能 ====================

    @log_step("切换位置开关")
    def toggle_location(self) -> None:
        self.click(self.location_toggle)
        self.wait(500)

    def get_location_toggle_status(self) -> str:
        return self.get_text(self.toggle_status_text)

    def is_location_enabled(self) -> bool:
        return self.is_checked(self.location_toggle)

    @log_step("按邮编搜索")
    def search_by_zip_code(self, zip_code: str) -> None:
        self.fill(self.zip_code_input, zip_code)
        self.click(self.search_zip_button)
        self.wait(settings.timeouts.submit_settle)

    def get_location_status_message(self) -> str:
        return self.get_text(self.location_status)

    def grant_geolocation_permission(self) -> None:
        self.grant_permissions(["geolocation"])

    # ==================== 点评列表 ====================

    def get_reviews_count(self) -> int:
        return self.review_cards.count()

    def get_all_reviews(self) -> List[Dict[str, str]]:
        """按文档顺序读取所有点评卡片的字段文本"""
        reviews = []
        for index in range(self.get_reviews_count()):
            card = self.review_cards.nth(index)
            reviews.append({
                "restaurant": self._card_text(card, card_restaurant),
                "food_item": self._card_text(card, card_food_item),
                "rating": self._card_text(card, card_rating),
                "review_text": self._card_text(card, card_review_text),
            })
        return reviews

    def is_reviews_list_empty(self) -> bool:
        return self.get_reviews_count() == 0

    def wait_for_reviews_to_load(self, timeout_ms: Optional[int] = None) -> bool:
        """等待第一张卡片出现；列表可能本来就是空的，因此只返回结果不抛异常"""
        return self.is_visible(self.review_cards, timeout_ms)

    def review_exists(self, restaurant_name: str, food_item: str) -> bool:
        """当前列表中是否有该餐厅与菜品的点评（单次读取）"""
        return any(
            restaurant_name in review["restaurant"] and food_item in review["food_item"]
            for review in self.get_all_reviews()
        )

    def wait_for_review(self, restaurant_name: str, food_item: str, timeout_ms: Optional[int] = None) -> bool:
        """
        轮询点评列表直到出现该餐厅与菜品的点评

        已有其他卡片时 wait_for_reviews_to_load 会立即返回，新提交的点评需要单独等待。

        Args:
            timeout_ms: 等待窗口，默认 settings.timeouts.visibility
        """
        found = self.probe.until(lambda: self.review_exists(restaurant_name, food_item), timeout_ms)
        logger.info(f"wait_for_review({restaurant_name!r}, {food_item!r}) -> {found}")
        return found

    def _card_text(self, card, descriptor: ElementDescriptor) -> str:
        # 卡片已挂载，字段缺失时不再等待
        return self.get_text(LiveElement(self.page, descriptor, root=card), timeout_ms=0)
