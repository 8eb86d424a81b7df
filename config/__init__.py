# config/__init__.py
from .manager import ConfigManager
from .env_loader import EnvLoader
from .yaml_loader import YamlLoader
from ._path import PROJECT_ROOT
from ._test_data import FixtureData, load_fixture_data

# 全局唯一配置实例
settings = ConfigManager()

__all__ = [
    "settings",
    "ConfigManager",
    "EnvLoader",
    "YamlLoader",
    "PROJECT_ROOT",
    "FixtureData",
    "load_fixture_data",
]
