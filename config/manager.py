import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ._path import PROJECT_ROOT
from .env_loader import EnvLoader
from .yaml_loader import YamlLoader


class BrowserConfig(BaseModel):
    """浏览器配置模型"""
    type: str = "chromium"  # chromium/firefox/webkit
    headless: bool = True
    viewport: Dict[str, int] = {"width": 1280, "height": 720}
    ignore_https_errors: bool = True

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("type")
    @classmethod
    def validate_browser_type(cls, v):
        valid_types = ["chromium", "firefox", "webkit"]
        if v not in valid_types:
            raise ValueError(f"无效的浏览器类型: {v}, 必须是 {valid_types}")
        return v


class TimeoutsConfig(BaseModel):
    """超时配置模型（毫秒）"""
    action: int = 10000
    navigation: int = 30000
    visibility: int = 5000
    poll_interval: int = 100
    click_backoff: int = 1000
    submit_settle: int = 1000

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("*")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("超时值必须大于0")
        return v


class RetryConfig(BaseModel):
    """点击重试策略"""
    click_attempts: int = 3

    @field_validator("click_attempts")
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("重试次数必须至少为1")
        return v


class LogConfig(BaseModel):
    """日志配置模型"""
    log_dir: Path = PROJECT_ROOT / "logs"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: str = "test_run.log"

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"无效的日志级别: {v}, 必须是 {valid_levels}")
        return v


class AllureConfig(BaseModel):
    """Allure报告配置"""
    results_dir: Path = PROJECT_ROOT / "reports/allure-results"
    attach_resolve_info: bool = True
    screenshot_dir: Path = PROJECT_ROOT / "screenshots"


class StorageKeysConfig(BaseModel):
    """被测应用识别登录态所使用的 localStorage 键"""
    current_user: str = "currentUser"
    is_logged_in: str = "isLoggedIn"


class AppConfig(BaseModel):
    """应用级配置模型"""

    env: str = "dev"
    base_url: str = "http://localhost:8080"
    run_e2e: bool = False

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    log: LogConfig = Field(default_factory=LogConfig)
    allure: AllureConfig = Field(default_factory=AllureConfig)
    storage_keys: StorageKeysConfig = Field(default_factory=StorageKeysConfig)

    project_root: Path = PROJECT_ROOT

    model_config = ConfigDict(protected_namespaces=())

    @field_validator("env")
    @classmethod
    def validate_env(cls, v):
        valid_envs = ["dev", "test", "staging", "prod"]
        if v not in valid_envs:
            raise ValueError(f"无效环境: {v}, 必须是 {valid_envs}")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")


class ConfigManager:
    """
    配置管理核心

    加载顺序（后者覆盖前者）：
        environments/base.yaml -> environments/<ENV>.yaml -> .env / 进程环境变量 -> apply_overrides()
    """

    def __init__(self, yaml_loader: Optional[YamlLoader] = None, env_loader: Optional[EnvLoader] = None):
        self._config: Optional[AppConfig] = None
        self._yaml_loader = yaml_loader or YamlLoader()
        self._env_loader = env_loader or EnvLoader()
        self._overrides: Dict[str, Any] = {}

    def _load_config(self) -> AppConfig:
        """加载完整配置"""
        env_config = self._env_loader.load()
        env_name = self._overrides.get("env") or env_config.get("env") or os.getenv("ENV", "dev")

        base_config = self._yaml_loader.load_environment(env=env_name)
        merged = self._deep_merge(base_config, env_config)
        final_config = self._deep_merge(merged, self._overrides)

        try:
            return AppConfig(**final_config)
        except ValidationError as e:
            self._handle_validation_error(e)

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """深度合并字典"""
        if not isinstance(base, dict):
            return override

        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def initialize(self):
        """显式初始化 (通常不需要调用)"""
        if self._config is None:
            self._config = self._load_config()

    def reload(self):
        """丢弃已加载的配置，下次访问时重新加载"""
        self._config = None

    def __getattr__(self, name: str) -> Any:
        """动态属性访问（代理到 AppConfig）"""
        if name.startswith("_"):
            raise AttributeError(name)

        self.initialize()
        try:
            return getattr(self._config, name)
        except AttributeError:
            available = ", ".join(AppConfig.model_fields)
            raise AttributeError(f"配置中不存在属性: {name}\n可用属性: {available}") from None

    def get(self, path: str, default: Any = None) -> Any:
        """
        安全获取嵌套配置
        示例: settings.get("timeouts.action", 10000)
        """
        self.initialize()

        current = self._config.model_dump()
        for key in path.split("."):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def apply_overrides(self, overrides_str: str):
        """
        应用命令行覆盖
        格式: "key1=value1,key2.subkey=value2"
        """
        if not overrides_str:
            return

        self._overrides = {}
        for pair in overrides_str.split(","):
            if "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            keys = [k.strip() for k in key.strip().split(".")]
            current = self._overrides
            for k in keys[:-1]:
                current = current.setdefault(k, {})
            current[keys[-1]] = self._parse_value(value.strip())

        self.reload()

    def _parse_value(self, value: str) -> Any:
        """智能解析配置值类型"""
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith("[") and value.endswith("]"):
            items = value[1:-1].split(";")
            return [self._parse_value(item.strip()) for item in items if item.strip()]

        return value

    def to_yaml(self) -> str:
        """生成配置快照YAML"""
        self.initialize()
        data = self._config.model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, sort_keys=False)

    @staticmethod
    def _handle_validation_error(error: ValidationError):
        """把 pydantic 校验错误整理成一条可读的 RuntimeError"""
        messages = []
        for err in error.errors():
            loc = ".".join(str(part) for part in err["loc"])
            messages.append(f"配置项 '{loc}': {err['msg']} (值: {err.get('input')})")

        raise RuntimeError("配置验证失败:\n" + "\n".join(messages)) from None
