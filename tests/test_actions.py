import unittest
from unittest.mock import Mock

from playwright.sync_api import Error as PlaywrightError

from utils.actions import ActionStatus, ResilientActionExecutor
from utils.exceptions import ActionExhaustedError, ElementTimeoutError, ValidationRejectedError
from utils.selector_helper import ElementDescriptor, LiveElement
from tests.fakes import FakeNode, FakePage


SUBMIT = ElementDescriptor.of("提交按钮", 'button[type="submit"]')
PASSWORD = ElementDescriptor.of("密码输入框", "#password", sensitive=True)
STAR = ElementDescriptor.of("{value} 星评分", "#star{value}", 'input[name="rating"][value="{value}"]')
VALID_RATINGS = frozenset(range(1, 6))


class TestClick(unittest.TestCase):
    """click 重试策略"""

    def setUp(self):
        self.page = FakePage()
        self.executor = ResilientActionExecutor(self.page, action_timeout_ms=5000, backoff_ms=1000, max_attempts=3)
        self.button = LiveElement(self.page, SUBMIT)

    def test_success_on_first_attempt(self):
        node = self.page.add('button[type="submit"]')

        outcome = self.executor.click(self.button)

        self.assertEqual(outcome.status, ActionStatus.SUCCESS)
        self.assertEqual(outcome.attempts, 1)
        self.assertTrue(outcome.succeeded)
        self.assertEqual(node.clicks, 1)
        self.assertEqual(self.page.waits, [])

    def test_succeeds_after_transient_failures(self):
        """前两次失败、第三次成功：中间固定等待 1000ms 两次"""
        node = self.page.add('button[type="submit"]', FakeNode(click_failures=2))

        outcome = self.executor.click(self.button, max_attempts=3)

        self.assertEqual(outcome.attempts, 3)
        self.assertEqual(node.clicks, 1)
        self.assertEqual(self.page.waits, [1000, 1000])

    def test_exhausted_after_exactly_max_attempts(self):
        """连续失败 max_attempts 次后抛出 ActionExhaustedError，保留最后一次错误"""
        node = self.page.add('button[type="submit"]', FakeNode(click_failures=10))

        with self.assertRaises(ActionExhaustedError) as ctx:
            self.executor.click(self.button, max_attempts=3)

        error = ctx.exception
        self.assertEqual(error.attempts, 3)
        self.assertEqual(error.outcome.status, ActionStatus.EXHAUSTED)
        self.assertIsInstance(error.last_error, PlaywrightError)
        self.assertIs(error.__cause__, error.last_error)
        self.assertIn("提交按钮", str(error))
        self.assertEqual(node.click_failures, 7)
        # 只在两次尝试之间等待，最后一次失败后不再等待
        self.assertEqual(self.page.waits, [1000, 1000])

    def test_missing_element_is_retried_then_exhausted(self):
        with self.assertRaises(ActionExhaustedError):
            self.executor.click(self.button, max_attempts=2)
        self.assertEqual(self.page.waits, [1000])

    def test_non_playwright_error_is_not_retried(self):
        element = Mock()
        element.description = "异常元素"
        element.first.click.side_effect = RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            self.executor.click(element)

        self.assertEqual(element.first.click.call_count, 1)
        self.assertEqual(self.page.waits, [])

    def test_max_attempts_must_be_positive(self):
        with self.assertRaises(ValueError):
            self.executor.click(self.button, max_attempts=-1)

    def test_zero_max_attempts_is_rejected_not_defaulted(self):
        node = self.page.add('button[type="submit"]')

        with self.assertRaises(ValueError):
            self.executor.click(self.button, max_attempts=0)
        self.assertEqual(node.clicks, 0)

    def test_zero_backoff_is_kept(self):
        executor = ResilientActionExecutor(self.page, action_timeout_ms=5000, backoff_ms=0, max_attempts=3)
        self.page.add('button[type="submit"]', FakeNode(click_failures=2))

        executor.click(self.button)

        self.assertEqual(executor.backoff_ms, 0)
        self.assertEqual(self.page.waits, [0, 0])


class TestFillAndPress(unittest.TestCase):

    def setUp(self):
        self.page = FakePage()
        self.executor = ResilientActionExecutor(self.page, action_timeout_ms=5000)

    def test_fill_clears_then_fills(self):
        node = self.page.add("#password", FakeNode(value="old"))

        outcome = self.executor.fill(LiveElement(self.page, PASSWORD), "secret")

        self.assertEqual(outcome.status, ActionStatus.SUCCESS)
        self.assertEqual(node.value, "secret")
        self.assertEqual([a[0] for a in self.page.actions], ["clear", "fill"])

    def test_fill_missing_element_times_out_without_retry(self):
        with self.assertRaises(ElementTimeoutError) as ctx:
            self.executor.fill(LiveElement(self.page, PASSWORD), "secret")

        self.assertEqual(ctx.exception.timeout_ms, 5000)
        self.assertEqual(self.page.waits, [])

    def test_sensitive_value_is_masked_in_log(self):
        self.page.add("#password")

        with self.assertLogs("automation", level="INFO") as logs:
            self.executor.fill(LiveElement(self.page, PASSWORD), "hunter2")

        self.assertNotIn("hunter2", "\n".join(logs.output))

    def test_press(self):
        self.page.add("#password")
        self.executor.press(LiveElement(self.page, PASSWORD), "Enter")
        self.assertIn(("press", "#password >> nth=0", "Enter"), self.page.actions)


class TestSelectSingle(unittest.TestCase):
    """select_single 取值校验与单选"""

    def setUp(self):
        self.page = FakePage()
        self.executor = ResilientActionExecutor(self.page, action_timeout_ms=5000)
        self.stars = {
            value: self.page.add(f"#star{value}", FakeNode(attrs={"value": str(value)}, group="rating"))
            for value in range(1, 6)
        }

    def test_rejects_out_of_range_values_before_dom_interaction(self):
        for value in (0, 6, -1, 3.5, True, "5", None):
            with self.subTest(value=value):
                with self.assertRaises(ValidationRejectedError):
                    self.executor.select_single(STAR, value, VALID_RATINGS)

        self.assertEqual(self.page.actions, [])
        self.assertFalse(any(node.checked for node in self.stars.values()))

    def test_rejection_is_a_value_error(self):
        with self.assertRaises(ValueError):
            self.executor.select_single(STAR, 6, VALID_RATINGS)

    def test_accepts_each_valid_value_with_single_checked_option(self):
        for value in range(1, 6):
            with self.subTest(value=value):
                outcome = self.executor.select_single(STAR, value, VALID_RATINGS)

                self.assertEqual(outcome.status, ActionStatus.SUCCESS)
                checked = [v for v, node in self.stars.items() if node.checked]
                self.assertEqual(checked, [value])

    def test_missing_option_times_out(self):
        self.page.remove("#star3")
        with self.assertRaises(ElementTimeoutError):
            self.executor.select_single(STAR, 3, VALID_RATINGS)

    def test_is_checked_degrades_to_false(self):
        self.assertFalse(self.executor.is_checked(LiveElement(self.page, "#missing")))
        self.stars[2].checked = True
        self.assertTrue(self.executor.is_checked(LiveElement(self.page, STAR.formatted(value=2))))


if __name__ == "__main__":
    unittest.main()
