from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from ._path import PROJECT_ROOT


class YamlLoader:
    """环境 YAML 配置加载器（environments/base.yaml + environments/<env>.yaml）"""

    BASE_FILE = "base.yaml"

    def __init__(self, config_dir: Union[str, Path] = PROJECT_ROOT / "environments"):
        self.config_dir = Path(config_dir)
        self._cache: Dict[str, Tuple[Dict[str, Any], Dict[str, float]]] = {}

    def load_environment(self, env: str = "dev") -> Dict[str, Any]:
        """加载指定环境的配置（环境文件覆盖 base.yaml）"""
        if env in self._cache:
            cached_config, mtime_dict = self._cache[env]
            if self._is_cache_valid(mtime_dict):
                return cached_config.copy()

        base_config, base_mtime = self._load_yaml_with_mtime(self.BASE_FILE)
        env_file = f"{env}.yaml"
        env_config, env_mtime = self._load_yaml_with_mtime(env_file)

        merged = self._deep_merge(base_config, env_config)

        self._cache[env] = (merged, {self.BASE_FILE: base_mtime, env_file: env_mtime})
        return merged.copy()

    def _is_cache_valid(self, mtime_dict: Dict[str, float]) -> bool:
        """文件修改时间未变化时缓存有效"""
        for filename, cached_mtime in mtime_dict.items():
            file_path = self.config_dir / filename
            if file_path.exists() and file_path.stat().st_mtime > cached_mtime:
                return False
        return True

    def _load_yaml_with_mtime(self, filename: str) -> Tuple[Dict[str, Any], float]:
        """
        加载单个 YAML 文件

        缺失的文件按空配置处理，代码中的默认值即可运行。
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            return {}, 0

        try:
            mtime = file_path.stat().st_mtime
            with open(file_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"YAML解析错误 ({file_path}): {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"YAML 根必须是字典 ({file_path})，当前类型: {type(config).__name__}")
        return config, mtime

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """递归合并字典，override 中的值优先"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def clear_cache(self):
        """清除缓存"""
        self._cache.clear()
