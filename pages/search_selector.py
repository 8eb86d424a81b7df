from utils.selector_helper import ElementDescriptor, Strategy

search_input = ElementDescriptor.of(
    "搜索输入框",
    'input[type="search"]',
    'input[name="search"]',
    'input[placeholder*="search" i]',
    "#search",
    ".search-input",
)

search_button = ElementDescriptor.of(
    "搜索按钮",
    'button[type="submit"]',
    'button:has-text("Search")',
    ".search-button",
)

search_results = ElementDescriptor.of(
    "搜索结果区",
    ".search-results",
    "#search-results",
    ".results",
    Strategy.test_id("search-results"),
)

search_result_items = ElementDescriptor.of(
    "搜索结果条目",
    ".search-result",
    ".result-item",
    Strategy.test_id("result"),
)

filter_section = ElementDescriptor.of(
    "筛选区",
    ".filters",
    ".filter-section",
    "aside",
    ".sidebar",
)

no_results_message = ElementDescriptor.of(
    "无结果提示",
    ".no-results",
    ".empty-state",
    Strategy.text("No results"),
    Strategy.text("not found"),
)

loading_indicator = ElementDescriptor.of(
    "加载中指示器",
    ".loading",
    ".spinner",
    Strategy.attribute("aria-busy", "true"),
)
