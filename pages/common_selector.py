from utils.selector_helper import ElementDescriptor

# 各页面共用的布局元素
navigation_bar = ElementDescriptor.of(
    "导航栏",
    "nav",
    ".navbar",
    "header",
)

main_content = ElementDescriptor.of(
    "主内容区",
    "main",
    "#main",
    ".main-content",
    "body",
)

page_heading = ElementDescriptor.of(
    "页面主标题",
    "h1",
    "h2",
)

links = ElementDescriptor.of(
    "页面链接",
    "a[href]",
)
