from utils.selector_helper import ElementDescriptor, Strategy

# 登录入口链接
login_link = ElementDescriptor.of(
    "登录链接",
    'a[href*="index.html"]',
    'a:has-text("Login")',
    'a:has-text("Sign In")',
)

# 注册入口链接
signup_link = ElementDescriptor.of(
    "注册链接",
    'a[href*="signup.html"]',
    'a:has-text("Sign up")',
    'a:has-text("Register")',
)

hero_section = ElementDescriptor.of(
    "首屏横幅",
    ".hero",
    ".banner",
    Strategy.role("banner"),
    "section",
)
