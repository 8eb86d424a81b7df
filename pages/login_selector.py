from utils.selector_helper import ElementDescriptor, Strategy

email_input = ElementDescriptor.of(
    "登录邮箱输入框",
    "#email",
    'input[name="email"]',
    'input[type="email"]',
    Strategy.label("Email"),
)

# 密码输入在日志中脱敏
password_input = ElementDescriptor.of(
    "登录密码输入框",
    "#password",
    'input[name="password"]',
    'input[type="password"]',
    sensitive=True,
)

login_button = ElementDescriptor.of(
    "登录按钮",
    'button[type="submit"]',
    'button:has-text("Login")',
    'button:has-text("Sign In")',
)

signup_link = ElementDescriptor.of(
    "注册链接",
    'a:has-text("Sign up")',
    'a:has-text("Register")',
)

error_message = ElementDescriptor.of(
    "登录错误提示",
    ".error-message",
    ".alert-error",
    "#error",
    Strategy.role("alert"),
)
