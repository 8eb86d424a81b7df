"""
环境变量加载器
负责从系统环境和 .env 文件加载配置
"""
import os
from typing import Any, Dict

from dotenv import load_dotenv

from ._path import PROJECT_ROOT

_TRUE_VALUES = ("true", "1", "yes")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


class EnvLoader:
    """环境变量加载器"""

    # 环境变量 -> timeouts 子配置字段
    TIMEOUT_VARS = {
        "ACTION_TIMEOUT": "action",
        "NAVIGATION_TIMEOUT": "navigation",
        "VISIBILITY_TIMEOUT": "visibility",
        "POLL_INTERVAL": "poll_interval",
        "CLICK_BACKOFF": "click_backoff",
        "SUBMIT_SETTLE": "submit_settle",
    }

    def __init__(self):
        self._loaded = False

    def load(self) -> Dict[str, Any]:
        """加载环境变量配置（.env 不覆盖已存在的进程环境变量）"""
        if not self._loaded:
            env_path = os.getenv("ENV_FILE", str(PROJECT_ROOT / ".env"))
            if os.path.exists(env_path):
                load_dotenv(env_path, override=False)
            self._loaded = True

        return self._env_to_config()

    def _env_to_config(self) -> Dict[str, Any]:
        """转换环境变量为配置字典"""
        config: Dict[str, Any] = {}

        if env := os.getenv("ENV"):
            config["env"] = env.lower()
        if base_url := os.getenv("BASE_URL"):
            config["base_url"] = base_url
        if run_e2e := os.getenv("RUN_E2E"):
            config["run_e2e"] = _as_bool(run_e2e)

        # 浏览器配置
        browser_config: Dict[str, Any] = {}
        if headed := os.getenv("HEADED"):
            browser_config["headless"] = not _as_bool(headed)
        if headless := os.getenv("BROWSER_HEADLESS"):
            browser_config["headless"] = _as_bool(headless)
        if browser_type := os.getenv("BROWSER_TYPE"):
            browser_config["type"] = browser_type.lower()
        if width := os.getenv("VIEWPORT_WIDTH"):
            browser_config.setdefault("viewport", {})["width"] = int(width)
        if height := os.getenv("VIEWPORT_HEIGHT"):
            browser_config.setdefault("viewport", {})["height"] = int(height)
        if browser_config:
            config["browser"] = browser_config

        # 超时配置（毫秒）
        timeouts = {
            field: int(value)
            for var, field in self.TIMEOUT_VARS.items()
            if (value := os.getenv(var))
        }
        if timeouts:
            config["timeouts"] = timeouts

        if attempts := os.getenv("CLICK_ATTEMPTS"):
            config["retry"] = {"click_attempts": int(attempts)}

        # 日志配置
        log_config: Dict[str, Any] = {}
        if log_level := os.getenv("LOG_LEVEL"):
            log_config["log_level"] = log_level.upper()
        if log_dir := os.getenv("LOG_DIR"):
            log_config["log_dir"] = log_dir
        if log_config:
            config["log"] = log_config

        if results_dir := os.getenv("ALLURE_RESULTS_DIR"):
            config["allure"] = {"results_dir": results_dir}

        return config
