import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

from config import load_fixture_data, settings
from pages.base_page import AuthState, BasePage
from pages.index_page import IndexPage
from pages.login_page import LoginPage
from pages.reviews_page import ReviewsPage
from pages.reviews_selector import review_cards
from pages.search_page import SearchPage
from utils.exceptions import ActionExhaustedError, ValidationRejectedError
from tests.fakes import FakeConsoleMessage, FakeNode, FakePage, use_fake_clock


class TestBasePage(unittest.TestCase):
    """BasePage 通用能力"""

    def setUp(self):
        self.page = FakePage(url="about:blank")
        self.base = use_fake_clock(BasePage(self.page, base_url="http://localhost:8080/"), self.page)

    def test_goto_joins_base_url(self):
        self.base.goto("/reviews.html")
        self.assertEqual(self.page.url, "http://localhost:8080/reviews.html")

        self.base.goto("https://example.com/x")
        self.assertEqual(self.page.url, "https://example.com/x")

    def test_wait_for_page_load_uses_networkidle(self):
        self.base.wait_for_page_load()
        self.assertEqual(self.page.load_states, ["networkidle"])

    def test_queries_degrade_instead_of_raising(self):
        """查询类方法在元素不存在时返回 False / "" / 0"""
        self.assertFalse(self.base.is_visible("#nothing", timeout_ms=200))
        self.assertEqual(self.base.get_text("#nothing"), "")
        self.assertEqual(self.base.get_input_value("#nothing"), "")
        self.assertEqual(self.base.get_count("#nothing"), 0)
        self.assertFalse(self.base.is_checked("#nothing"))

    def test_get_text_strips_whitespace(self):
        self.page.add("h1", FakeNode(text="  Fresh Reviews \n"))
        self.assertEqual(self.base.get_text("h1"), "Fresh Reviews")

    def test_session_state_unauthenticated_when_storage_unavailable(self):
        self.page.storage_available = False
        state = self.base.session_state()

        self.assertEqual(state.auth_state, AuthState.UNAUTHENTICATED)
        self.assertIsNone(state.current_user)
        self.assertEqual(state.viewport, {"width": 1280, "height": 720})

    def test_session_state_ignores_malformed_user(self):
        self.page.local_storage.update({"currentUser": "{not json", "isLoggedIn": "true"})
        self.assertEqual(self.base.session_state().auth_state, AuthState.UNAUTHENTICATED)

    def test_console_errors_are_collected(self):
        self.page.emit("console", FakeConsoleMessage("log", "hello"))
        self.page.emit("console", FakeConsoleMessage("error", "Uncaught TypeError"))

        self.assertEqual(self.base.console_errors(), ["Uncaught TypeError"])

    def test_viewport_and_geolocation(self):
        self.base.set_viewport_size(375, 667)
        self.base.grant_permissions(["geolocation"])
        self.base.set_geolocation(37.7749, -122.4194)

        self.assertEqual(self.base.viewport_size(), {"width": 375, "height": 667})
        self.assertEqual(self.page.context.permissions, ["geolocation"])
        self.assertEqual(self.page.context.geolocation, {"latitude": 37.7749, "longitude": -122.4194})

    def test_dialog_handlers(self):
        dialog = Mock()
        self.base.accept_dialog()
        self.page.emit("dialog", dialog)
        dialog.accept.assert_called_once_with()

        other = Mock()
        self.page.listeners["dialog"] = []
        self.base.dismiss_dialog()
        self.page.emit("dialog", other)
        other.dismiss.assert_called_once_with()

    def test_history_navigation(self):
        self.base.goto("/index.html")
        self.base.reload()
        self.base.go_back()

        self.assertEqual([a[0] for a in self.page.actions], ["goto", "reload", "go_back"])
        self.assertIsNotNone(self.base.get_page_load_time())
        self.assertEqual(self.base.title(), "Fresh Reviews")

    def test_debug_info(self):
        self.page.add(".review-card")
        info = self.base.debug_info(review_cards)

        self.assertEqual(info["description"], "点评卡片")
        self.assertEqual(info["count"], 1)
        self.assertTrue(info["visible"])
        self.assertTrue(info["resolve"]["matched"])
        self.assertEqual(len(info["strategies"]), 2)

    def test_take_screenshot_writes_under_configured_dir(self):
        with tempfile.TemporaryDirectory() as tmp:
            with patch.object(settings.allure, "screenshot_dir", Path(tmp)):
                path = self.base.take_screenshot("home")

        self.assertTrue(path.startswith(tmp))
        self.assertIn(("screenshot", path, True), self.page.actions)

    def test_auto_screenshot_on_error_reraises(self):
        with patch.object(BasePage, "take_screenshot") as take_screenshot:
            with self.assertRaises(ActionExhaustedError):
                with self.base.auto_screenshot_on_error("submit"):
                    self.base.click("#missing", max_attempts=1)

        take_screenshot.assert_called_once_with("submit_failure")


class TestLoginPage(unittest.TestCase):
    """登录页与测试后门"""

    def setUp(self):
        self.page = FakePage(url="about:blank")
        self.login_page = use_fake_clock(LoginPage(self.page, base_url="http://localhost:8080"), self.page)

    def test_bootstrap_authenticated_session_without_ui(self):
        """注入 localStorage 后会话即为已登录，且没有任何表单交互"""
        state = self.login_page.bootstrap_authenticated_session()

        self.assertEqual(state, AuthState.AUTHENTICATED)
        self.assertEqual(self.page.local_storage["isLoggedIn"], "true")
        self.assertEqual(self.page.stored_user()["email"], "alice@example.com")
        self.assertEqual(self.page.stored_user()["name"], "Alice Johnson")
        self.assertNotIn("password", self.page.local_storage["currentUser"])
        self.assertEqual([a[0] for a in self.page.actions], ["goto"])

    def test_bootstrap_with_explicit_user(self):
        bob = load_fixture_data().users.second_user
        self.login_page.bootstrap_authenticated_session(bob)
        self.assertEqual(self.page.stored_user()["email"], "bob@example.com")

    def test_clear_auth_session(self):
        self.login_page.bootstrap_authenticated_session()
        self.login_page.clear_auth_session()

        self.assertEqual(self.page.local_storage, {})
        self.assertEqual(self.login_page.session_state().auth_state, AuthState.UNAUTHENTICATED)

    def test_login_fills_form_and_settles(self):
        email = self.page.add("#email")
        password = self.page.add('input[type="password"]')
        button = self.page.add('button[type="submit"]')

        self.login_page.login("alice@example.com", "password123")

        self.assertEqual(email.value, "alice@example.com")
        self.assertEqual(password.value, "password123")
        self.assertEqual(button.clicks, 1)
        self.assertEqual(self.page.load_states, ["networkidle"])

    def test_login_with_test_user_uses_secret_password(self):
        email = self.page.add("#email")
        password = self.page.add("#password")
        self.page.add('button[type="submit"]')

        self.login_page.login_with_test_user()

        self.assertEqual(email.value, "alice@example.com")
        self.assertEqual(password.value, "password123")

    def test_login_success_and_error_queries(self):
        self.page.url = "http://localhost:8080/reviews.html"
        self.assertTrue(self.login_page.is_login_successful())
        self.assertFalse(self.login_page.is_on_login_page())

        self.assertEqual(self.login_page.get_error_message(), "")
        self.page.add("role=alert", FakeNode(text="Invalid credentials"))
        self.assertEqual(self.login_page.get_error_message(), "Invalid credentials")


class TestReviewsPage(unittest.TestCase):
    """点评页表单与列表"""

    def setUp(self):
        self.page = FakePage(url="http://localhost:8080/reviews.html")
        self.reviews = use_fake_clock(ReviewsPage(self.page), self.page)
        self.inputs = {
            "restaurant": self.page.add("#restaurantName"),
            "food": self.page.add("#foodItem"),
            "text": self.page.add("#review"),
        }
        self.stars = {}
        for value in range(1, 6):
            star = FakeNode(attrs={"value": str(value)}, group="rating")
            self.stars[value] = self.page.add(f"#star{value}", star)
            self.page.add('input[name="rating"]', star)

    def test_select_rating_checks_exactly_one(self):
        for value in range(1, 6):
            with self.subTest(rating=value):
                self.reviews.select_rating(value)
                self.assertEqual(self.reviews.get_selected_rating(), value)
                self.assertEqual(self.reviews.get_checked_rating_count(), 1)
                self.assertTrue(self.reviews.is_rating_checked(value))

    def test_invalid_ratings_are_rejected(self):
        for value in (0, 6, -1, 3.5):
            with self.subTest(rating=value):
                with self.assertRaises(ValidationRejectedError):
                    self.reviews.select_rating(value)
        self.assertIsNone(self.reviews.get_selected_rating())

    def test_fill_and_clear_form(self):
        self.assertTrue(self.reviews.is_form_empty())

        self.reviews.fill_review_form("Test Restaurant", "Test Dish", 5, "Amazing food! Highly recommended.")

        self.assertEqual(self.inputs["restaurant"].value, "Test Restaurant")
        self.assertEqual(self.inputs["food"].value, "Test Dish")
        self.assertEqual(self.inputs["text"].value, "Amazing food! Highly recommended.")
        self.assertFalse(self.reviews.is_form_empty())

        self.reviews.clear_form()
        self.assertTrue(self.reviews.is_form_empty())

    def test_submit_waits_for_settle(self):
        button = self.page.add('button[type="submit"]')
        self.reviews.submit_review()

        self.assertEqual(button.clicks, 1)
        self.assertEqual(self.page.waits, [1000])

    def test_validation_errors(self):
        self.inputs["restaurant"].validation_message = "Please fill out this field."
        self.assertEqual(self.reviews.get_form_validation_errors(), ["Please fill out this field."])

    def test_get_all_reviews_reads_card_fields(self):
        for restaurant, food in (("Cafe", "Coffee"), ("Test Restaurant", "Test Dish")):
            card = self.page.add(".review-card")
            card.add_child("h3", FakeNode(text=restaurant))
            card.add_child(".food-item", FakeNode(text=food))
            card.add_child(".stars", FakeNode(text="★★★★★"))
            card.add_child("p", FakeNode(text="Nice"))

        reviews = self.reviews.get_all_reviews()

        self.assertEqual(self.reviews.get_reviews_count(), 2)
        self.assertEqual(reviews[1], {
            "restaurant": "Test Restaurant",
            "food_item": "Test Dish",
            "rating": "★★★★★",
            "review_text": "Nice",
        })
        self.assertTrue(self.reviews.review_exists("Test Restaurant", "Test Dish"))
        self.assertFalse(self.reviews.review_exists("Cafe", "Test Dish"))

    def test_success_message_waits_for_banner(self):
        """提示在 200ms 后才渲染，读取文本时等待它出现"""
        self.page.at(200, lambda: self.page.add("#reviewSuccess", FakeNode(text=" Review submitted successfully! ")))

        self.assertEqual(self.reviews.get_success_message(), "Review submitted successfully!")
        self.assertEqual(self.page.clock.elapsed_ms, 200)

    def test_text_of_hidden_element_is_still_read(self):
        self.page.add("#locationStatus", FakeNode(text="Location disabled", visible=False))
        self.assertEqual(self.reviews.get_location_status_message(), "Location disabled")

    def test_get_text_gives_up_after_window(self):
        self.assertEqual(self.reviews.get_text(self.reviews.user_name_display, timeout_ms=300), "")
        self.assertEqual(self.page.waits, [100, 100, 100])

    def _add_card(self, restaurant, food):
        card = self.page.add(".review-card")
        card.add_child("h3", FakeNode(text=restaurant))
        card.add_child(".food-item", FakeNode(text=food))
        return card

    def test_wait_for_review_polls_until_new_card_appears(self):
        """已有旧卡片时列表加载立即返回，新点评要继续轮询直到出现"""
        self._add_card("Cafe", "Coffee")
        self.page.at(500, lambda: self._add_card("Test Restaurant", "Test Dish"))

        self.assertTrue(self.reviews.wait_for_reviews_to_load())
        self.assertFalse(self.reviews.review_exists("Test Restaurant", "Test Dish"))

        self.assertTrue(self.reviews.wait_for_review("Test Restaurant", "Test Dish"))
        self.assertEqual(self.page.clock.elapsed_ms, 500)

    def test_wait_for_review_times_out(self):
        self._add_card("Cafe", "Coffee")

        self.assertFalse(self.reviews.wait_for_review("Test Restaurant", "Test Dish", timeout_ms=1000))
        self.assertEqual(self.page.clock.elapsed_ms, 1000)

    def test_cards_found_by_test_id(self):
        self.page.add("test_id=review-card")
        self.assertEqual(self.reviews.get_reviews_count(), 1)
        self.assertFalse(self.reviews.is_reviews_list_empty())

    def test_location_features(self):
        toggle = self.page.add("#locationToggle")
        self.page.add("#toggleStatusText", FakeNode(text="Location: On"))
        zip_input = self.page.add("#zipCodeInput")
        zip_button = self.page.add("#searchZipBtn")

        self.reviews.toggle_location()
        toggle.checked = True
        self.reviews.search_by_zip_code("94102")

        self.assertTrue(self.reviews.is_location_enabled())
        self.assertEqual(self.reviews.get_location_toggle_status(), "Location: On")
        self.assertEqual(zip_input.value, "94102")
        self.assertEqual(zip_button.clicks, 1)

    def test_is_authenticated_uses_logout_button(self):
        self.assertFalse(self.reviews.is_authenticated())
        self.page.add("#logoutBtn")
        self.assertTrue(self.reviews.is_authenticated())


class TestIndexAndSearchPages(unittest.TestCase):

    def test_index_queries(self):
        page = FakePage(url="http://localhost:8080/")
        index = use_fake_clock(IndexPage(page), page)
        page.add("h2", FakeNode(text="Welcome"))
        page.add("a[href]", FakeNode(attrs={"href": "/index.html"}))
        page.add("a[href]", FakeNode(attrs={"href": "/signup.html"}))
        page.add('a:has-text("Login")')

        self.assertTrue(index.is_on_index_page())
        self.assertEqual(index.get_page_title_text(), "Welcome")
        self.assertTrue(index.is_login_link_visible())
        self.assertEqual(index.link_hrefs(), ["/index.html", "/signup.html"])

    def test_search_presses_enter_without_button(self):
        page = FakePage(url="http://localhost:8080/search.html")
        search = use_fake_clock(SearchPage(page), page)
        page.add("#search")

        search.search("pizza")

        self.assertIn(("press", "#search >> nth=0", "Enter"), page.actions)
        self.assertEqual(page.load_states, ["networkidle"])

    def test_search_clicks_button_when_present(self):
        page = FakePage(url="http://localhost:8080/search.html")
        search = use_fake_clock(SearchPage(page), page)
        page.add('input[type="search"]')
        button = page.add(".search-button")

        search.search("sushi")

        self.assertEqual(button.clicks, 1)

    def test_search_results_count(self):
        page = FakePage(url="http://localhost:8080/search.html")
        search = use_fake_clock(SearchPage(page), page)
        self.assertEqual(search.get_search_results_count(), 0)

        page.add(".results")
        for _ in range(3):
            page.add("test_id=result")
        self.assertEqual(search.get_search_results_count(), 3)

    def test_wait_for_search_complete(self):
        page = FakePage(url="http://localhost:8080/search.html")
        search = use_fake_clock(SearchPage(page), page)
        spinner = page.add(".spinner")
        page.at(600, lambda: setattr(spinner, "visible", False))

        search.wait_for_search_complete()

        self.assertFalse(spinner.visible)
        self.assertEqual(page.load_states, ["networkidle"])


if __name__ == "__main__":
    unittest.main()
