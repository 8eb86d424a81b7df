import re
import sys
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

import allure
import pytest
from playwright.sync_api import Error as PlaywrightError

from config import load_fixture_data, settings
from pages.index_page import IndexPage
from pages.login_page import LoginPage
from pages.reviews_page import ReviewsPage
from pages.search_page import SearchPage
from utils.data_loader import InvalidYamlFormatError, load_yaml_file
from utils.logger import attach_logs_to_allure, logger, setup_playwright_logging


# ==================== 命令行与运行开关 ====================
def pytest_addoption(parser):
    parser.addoption(
        "--overrides",
        action="store",
        default="",
        help='覆盖配置项，例如 --overrides "timeouts.action=5000,retry.click_attempts=2"',
    )


def pytest_configure(config):
    settings.apply_overrides(config.getoption("--overrides"))
    for marker in (
            "yaml_data(file, group): 从 test_data/<file> 的 <group> 组参数化",
            "e2e: 需要运行中的 Fresh Reviews 站点（settings.run_e2e 为 true 时执行）",
            "smoke: 冒烟用例",
            "regression: 回归用例",
    ):
        config.addinivalue_line("markers", marker)


def pytest_collection_modifyitems(config, items):
    """未开启 run_e2e 时跳过所有 e2e 用例，单元测试照常执行"""
    if settings.run_e2e:
        return
    skip_e2e = pytest.mark.skip(reason="run_e2e 未开启（设置 RUN_E2E=true 或 ENV=test）")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    # 供 fixture 在 teardown 阶段判断用例是否失败
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


# ==================== YAML 数据驱动 ====================
@lru_cache(maxsize=32)
def _cached_load_yaml(file_path_str: str) -> Dict[str, List[Dict[str, Any]]]:
    return load_yaml_file(Path(file_path_str))


def pytest_generate_tests(metafunc):
    """
    @pytest.mark.yaml_data(file=..., group=...) 参数化

    测试函数参数名必须与 YAML 字段名一致；用例的 id 字段作为 pytest 用例 ID。
    文件或组不存在时发出警告并跳过，格式错误时终止收集。
    """
    marker = metafunc.definition.get_closest_marker("yaml_data")
    if marker is None:
        return

    try:
        file_name = marker.kwargs["file"]
        group_name = marker.kwargs["group"]
    except KeyError as e:
        _raise_usage_error(
            metafunc,
            f"@pytest.mark.yaml_data 缺少必需参数 {e}\n"
            f"  正确用法: @pytest.mark.yaml_data(file='review_cases.yaml', group='valid_ratings')",
        )
        return

    abs_file_path = settings.project_root / "test_data" / file_name
    if not abs_file_path.exists():
        _warn_and_skip(metafunc, f"YAML数据文件不存在，跳过测试: {abs_file_path}")
        return

    try:
        groups = _cached_load_yaml(str(abs_file_path))
    except InvalidYamlFormatError as e:
        _raise_usage_error(metafunc, f"YAML数据格式验证失败，测试终止:\n{e}")
        return

    cases = groups.get(group_name)
    if not cases:
        _warn_and_skip(metafunc, f"YAML中不存在用例组 '{group_name}'，可用组: {sorted(groups) or '[空]'}")
        return

    param_names = [name for name in metafunc.fixturenames if name in cases[0]]
    if not param_names:
        _raise_usage_error(
            metafunc,
            f"测试函数参数与YAML字段无匹配\n"
            f"  YAML字段: {sorted(cases[0])}\n"
            f"  测试参数: {sorted(metafunc.fixturenames)}",
        )
        return

    param_values: List[Tuple[Any, ...]] = []
    param_ids: List[str] = []
    for idx, case in enumerate(cases):
        if any(name not in case for name in param_names):
            continue
        param_values.append(tuple(case[name] for name in param_names))
        param_ids.append(_case_id(case, group_name, idx))

    if not param_values:
        _warn_and_skip(metafunc, f"用例组 '{group_name}' 无有效用例，所需参数: {param_names}")
        return

    metafunc.parametrize(param_names, param_values, ids=param_ids)


def _case_id(case: Dict[str, Any], group_name: str, idx: int) -> str:
    case_id = str(case.get("id", ""))
    case_id = re.sub(r"[^a-zA-Z0-9_]", "_", case_id)
    case_id = re.sub(r"_+", "_", case_id).strip("_")
    if not case_id or not case_id[0].isalpha():
        case_id = f"{group_name}_{idx}"
    return case_id[:100]


def _raise_usage_error(metafunc, message: str) -> None:
    raise pytest.UsageError(f"[YAML数据错误] in {metafunc.definition.nodeid}\n{message}")


def _warn_and_skip(metafunc, message: str) -> None:
    """
    收集阶段不能调用 pytest.skip()：发出警告并用空参数列表参数化，
    pytest 会把该用例标记为 skipped
    """
    full_message = f"[YAML数据] in {metafunc.definition.nodeid}\n{message}"
    warnings.warn(full_message, UserWarning, stacklevel=2)
    print(f"\n⚠️  YAML数据跳过 [{metafunc.definition.nodeid}]:\n{message}", file=sys.stderr)

    safe_params = [p for p in metafunc.fixturenames if p.isidentifier() and not p.startswith("_") and p != "request"]
    metafunc.parametrize(safe_params[0] if safe_params else "yaml_skip_marker", [], ids=[])


# ==================== 浏览器上下文（pytest-playwright） ====================
@pytest.fixture(scope="session")
def browser_context_args(browser_context_args):
    return {
        **browser_context_args,
        "base_url": settings.base_url,
        "viewport": settings.browser.viewport,
        "ignore_https_errors": settings.browser.ignore_https_errors,
    }


@pytest.fixture(scope="session")
def browser_type_launch_args(browser_type_launch_args):
    # --headed 命令行参数优先；配置中 headless=false 时同样有头运行
    if not settings.browser.headless:
        return {**browser_type_launch_args, "headless": False}
    return browser_type_launch_args


@pytest.fixture(scope="session")
def fixture_data():
    return load_fixture_data()


@pytest.fixture
def e2e_page(request, page):
    """
    pytest-playwright 的 page，附加日志转发、默认超时与失败截图

    用例结束时清空 localStorage，保证会话不会泄漏到下一个用例。
    """
    page.set_default_timeout(settings.timeouts.action)
    page.set_default_navigation_timeout(settings.timeouts.navigation)
    setup_playwright_logging(page, logger)

    yield page

    report = getattr(request.node, "rep_call", None)
    if report is not None and report.failed:
        allure.attach(
            page.screenshot(full_page=True),
            name=f"{request.node.name}_failure",
            attachment_type=allure.attachment_type.PNG,
        )
        attach_logs_to_allure()

    try:
        LoginPage(page).clear_auth_session()
    except PlaywrightError as e:
        logger.debug(f"teardown 清理 localStorage 失败: {e}")


# ==================== 页面对象 ====================
@pytest.fixture
def index_page(e2e_page) -> IndexPage:
    index = IndexPage(e2e_page)
    index.navigate()
    return index


@pytest.fixture
def login_page(e2e_page) -> LoginPage:
    login = LoginPage(e2e_page)
    login.navigate()
    return login


@pytest.fixture
def search_page(e2e_page) -> SearchPage:
    search = SearchPage(e2e_page)
    search.navigate()
    return search


@pytest.fixture
def reviews_page(e2e_page) -> ReviewsPage:
    """未登录状态下的点评页对象（不自动打开页面）"""
    return ReviewsPage(e2e_page)


@pytest.fixture
def authenticated_reviews_page(e2e_page) -> ReviewsPage:
    """通过测试后门登录后打开点评页"""
    LoginPage(e2e_page).bootstrap_authenticated_session()
    reviews = ReviewsPage(e2e_page)
    reviews.navigate()
    return reviews
