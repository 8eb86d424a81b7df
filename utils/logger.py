"""
测试运行日志配置

- 控制台彩色输出 + 按天轮转的主日志 + 按大小轮转的错误日志
- 过滤器统一脱敏密码 / token / 邮箱
- 浏览器 console 与页面异常转发到项目日志
- log_step / log_duration 跟踪页面工作流步骤
"""

import logging
import sys
import re
import atexit
import threading
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set
from functools import wraps, lru_cache
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler

import allure

from config import settings

# ==================== 配置集中管理 ====================

class LogConfig:
    """日志配置集中管理"""
    LOG_DIR = Path(settings.log.log_dir)
    LOG_LEVEL = settings.log.log_level
    MAIN_LOG_FILE = settings.log.log_file
    BACKUP_COUNT = 7
    MAX_BYTES = 10 * 1024 * 1024  # 10MB
    ENABLE_COLORS = sys.stdout.isatty()
    CONSOLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
    FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(module)s:%(funcName)s:%(lineno)d] %(message)s"
    SENSITIVE_KEYS: Set[str] = {
        'password', 'pwd', 'token', 'secret', 'authorization', 'cookie'
    }

# ==================== 敏感信息脱敏 ====================

_MASK_PATTERNS = [
    (re.compile(r'(?i)("password"\s*:\s*")[^"]+(")'), r'\1******\2'),
    (re.compile(r'(?i)(password=)[^&\s]+'), r'\1******'),
    (re.compile(r'(?i)("token"\s*:\s*")[^"]+(")'), r'\1******\2'),
    (re.compile(r'(?i)(token=)[^&\s]+'), r'\1******'),
    (re.compile(r'([a-zA-Z0-9._%+-]+)@([a-zA-Z0-9.-]+\.[a-zA-Z]{2,})'), r'***@\2'),
]

@lru_cache(maxsize=128)
def _mask_cached(text: str) -> str:
    for pattern, repl in _MASK_PATTERNS:
        text = pattern.sub(repl, text)
    return text

def mask_sensitive_data(message: Any) -> Any:
    """脱敏字符串中的密码、token 和邮箱；非字符串原样返回"""
    if not isinstance(message, str):
        return message
    if len(message) < 500:
        return _mask_cached(message)
    for pattern, repl in _MASK_PATTERNS:
        message = pattern.sub(repl, message)
    return message

# ==================== 彩色格式化器 ====================

class ColorCodes:
    RESET = "\x1b[0m"
    CYAN = "\x1b[36m"
    GREEN = "\x1b[32m"
    YELLOW = "\x1b[33m"
    RED = "\x1b[31m"
    CRITICAL = "\x1b[1m\x1b[41m\x1b[37m"

class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: ColorCodes.CYAN,
        logging.INFO: ColorCodes.GREEN,
        logging.WARNING: ColorCodes.YELLOW,
        logging.ERROR: ColorCodes.RED,
        logging.CRITICAL: ColorCodes.CRITICAL,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        if not color:
            return super().format(record)
        original = record.levelname
        try:
            record.levelname = f"{color}{record.levelname}{ColorCodes.RESET}"
            return super().format(record)
        finally:
            record.levelname = original

# ==================== 处理器工厂 ====================

class HandlerFactory:
    """日志处理器工厂，统一登记以便退出时关闭"""
    _handlers: List[logging.Handler] = []
    _lock = threading.Lock()

    @classmethod
    def _ensure_log_dir(cls) -> Path:
        try:
            LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)
            return LogConfig.LOG_DIR
        except OSError as e:
            sys.stderr.write(f"Failed to create log directory: {e}\n")
            return Path.cwd()

    @classmethod
    def create_timed_handler(cls, filename: str, level: int, when: str = "midnight") -> logging.Handler:
        handler = TimedRotatingFileHandler(
            filename=cls._ensure_log_dir() / filename,
            when=when,
            interval=1,
            backupCount=LogConfig.BACKUP_COUNT,
            encoding="utf-8",
            delay=True  # 首次写入时才打开文件
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LogConfig.FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        cls._register(handler)
        return handler

    @classmethod
    def create_rotating_handler(cls, filename: str, level: int, max_bytes: int) -> logging.Handler:
        handler = RotatingFileHandler(
            filename=cls._ensure_log_dir() / filename,
            maxBytes=max_bytes,
            backupCount=5,
            encoding="utf-8",
            delay=True
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LogConfig.FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        cls._register(handler)
        return handler

    @classmethod
    def create_console_handler(cls, level: int, enable_colors: bool) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if enable_colors and LogConfig.ENABLE_COLORS:
            handler.setFormatter(ColoredFormatter(LogConfig.CONSOLE_FORMAT, "%H:%M:%S"))
        else:
            handler.setFormatter(logging.Formatter(LogConfig.CONSOLE_FORMAT, "%Y-%m-%d %H:%M:%S"))
        cls._register(handler)
        return handler

    @classmethod
    def _register(cls, handler: logging.Handler) -> None:
        with cls._lock:
            cls._handlers.append(handler)

    @classmethod
    def cleanup(cls) -> None:
        """进程退出时关闭所有处理器"""
        for handler in cls._handlers:
            try:
                handler.close()
            except OSError:
                pass

atexit.register(HandlerFactory.cleanup)

# ==================== 敏感数据过滤器 ====================

class SensitiveDataFilter(logging.Filter):
    """对消息与参数做脱敏"""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_sensitive_data(record.msg)
        if record.args:
            record.args = self._sanitize_args(record.args)
        return True

    def _sanitize_args(self, args: Any) -> Any:
        if isinstance(args, dict):
            return self._sanitize_dict(args)
        if isinstance(args, (list, tuple)):
            return type(args)(mask_sensitive_data(arg) for arg in args)
        return args

    def _sanitize_dict(self, d: Dict) -> Dict:
        return {
            k: "******" if self._is_sensitive_key(k) else mask_sensitive_data(v)
            for k, v in d.items()
        }

    @staticmethod
    def _is_sensitive_key(key: Any) -> bool:
        key_str = str(key).lower()
        return any(s in key_str for s in LogConfig.SENSITIVE_KEYS)

# ==================== Playwright / Allure 集成 ====================

def setup_playwright_logging(page, logger: logging.Logger) -> None:
    """把浏览器 console 输出和未捕获的页面异常转发到日志"""
    if not hasattr(page, 'on'):
        logger.warning("Invalid Playwright page object")
        return

    level_map = {'error': logger.error, 'warning': logger.warning,
                 'info': logger.info, 'log': logger.debug}

    def console_handler(msg):
        handler = level_map.get(getattr(msg, 'type', 'log'), logger.debug)
        handler(f"[Browser] {getattr(msg, 'text', '') or msg}")

    page.on("console", console_handler)
    page.on("pageerror", lambda err: logger.error(f"[Page Error] {err}"))

def attach_logs_to_allure(max_chars: int = 100_000) -> None:
    """把本次运行的主日志附加到 Allure 报告"""
    log_file = LogConfig.LOG_DIR / LogConfig.MAIN_LOG_FILE
    if not log_file.exists() or log_file.stat().st_size == 0:
        return
    with open(log_file, 'r', encoding='utf-8', errors='replace') as f:
        content = f.read()[-max_chars:]
    if content:
        allure.attach(content, name="test_run_logs", attachment_type=allure.attachment_type.TEXT)

# ==================== 主日志配置 ====================

_setup_lock = threading.Lock()

def setup_logger(
    name: str = "automation",
    log_level: Optional[str] = None,
    log_to_console: bool = True,
    log_to_file: bool = True,
    enable_colors: bool = True,
    enable_sensitive_filter: bool = True
) -> logging.Logger:
    """
    配置命名日志器（重复调用不会重复注册处理器）

    Args:
        name: 日志器名称
        log_level: 日志级别，默认取 settings.log.log_level
        log_to_console: 是否输出到控制台
        log_to_file: 是否写入 settings.log.log_dir 下的日志文件
        enable_colors: 控制台是否彩色输出（仅 TTY 生效）
        enable_sensitive_filter: 是否启用脱敏过滤器
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    with _setup_lock:
        if logger.handlers:
            return logger

        level = getattr(logging, (log_level or LogConfig.LOG_LEVEL).upper(), logging.INFO)
        logger.setLevel(level)
        logger.propagate = False

        if enable_sensitive_filter:
            logger.addFilter(SensitiveDataFilter())

        if log_to_console:
            logger.addHandler(HandlerFactory.create_console_handler(logging.DEBUG, enable_colors))

        if log_to_file:
            # 主日志（按天轮转）
            logger.addHandler(HandlerFactory.create_timed_handler(LogConfig.MAIN_LOG_FILE, logging.DEBUG))
            # 错误日志（按大小轮转）
            logger.addHandler(HandlerFactory.create_rotating_handler(
                f"error_{datetime.now().strftime('%Y%m%d')}.log",
                logging.ERROR,
                LogConfig.MAX_BYTES
            ))

        if name == "automation":
            logger.info("=" * 70)
            logger.info(f"Logger initialized: {name} | Level: {logging.getLevelName(level)}")
            logger.info(f"Log directory: {LogConfig.LOG_DIR.resolve()}")
            logger.info(f"Environment: {settings.env} | Base URL: {settings.base_url}")
            logger.info(f"UTC Time: {datetime.now(timezone.utc).isoformat()}")
            logger.info("=" * 70)

        return logger

class LazyLogger:
    """按名称缓存已配置的日志器"""
    _instances: Dict[str, logging.Logger] = {}
    _lock = threading.Lock()

    @classmethod
    def get(cls, name: str, **kwargs) -> logging.Logger:
        if name not in cls._instances:
            with cls._lock:
                if name not in cls._instances:
                    cls._instances[name] = setup_logger(name, **kwargs)
        return cls._instances[name]

logger = LazyLogger.get("automation")

# ==================== 步骤跟踪 ====================

def log_step(step_name: str, logger: logging.Logger = logger) -> Callable:
    """步骤跟踪装饰器，同时在 Allure 中生成同名步骤"""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger.info("Step: %s", step_name)
            with allure.step(step_name):
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    logger.error("Step failed: %s | Error: %s", step_name, e)
                    raise
            logger.info("Step completed: %s", step_name)
            return result
        return wrapper
    return decorator

@contextmanager
def log_duration(step_name: str, logger: logging.Logger = logger):
    """执行时间跟踪上下文管理器"""
    start = datetime.now()
    logger.debug("Starting: %s", step_name)
    try:
        yield
    finally:
        duration_ms = (datetime.now() - start).total_seconds() * 1000
        logger.debug("Completed: %s (%.2fms)", step_name, duration_ms)

__all__ = [
    "logger", "setup_logger", "log_step", "log_duration", "mask_sensitive_data",
    "setup_playwright_logging", "attach_logs_to_allure", "SensitiveDataFilter",
    "LazyLogger", "LogConfig"
]
