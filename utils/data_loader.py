from pathlib import Path
from typing import Any, Dict, List

import yaml

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


class InvalidYamlFormatError(ValueError):
    """YAML 格式验证失败异常"""
    pass


def load_yaml_file(file_path: Path) -> Dict[str, List[Dict[str, Any]]]:
    """
    加载并严格验证数据驱动用例文件

    :param file_path: YAML 文件的完整路径
    :return: 统一结构 {group_name: [case_dict1, case_dict2, ...]}，单个字典会被包装为列表
    :raises FileNotFoundError: 文件不存在或不是文件
    :raises InvalidYamlFormatError: 格式验证失败
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"YAML 文件不存在: {file_path}")

    if file_path.stat().st_size > MAX_FILE_SIZE:
        raise InvalidYamlFormatError(f"YAML 文件过大 (>10MB): {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidYamlFormatError(f"YAML 语法错误 in {file_path}:\n{e}") from e
    except UnicodeDecodeError as e:
        raise InvalidYamlFormatError(f"YAML 文件编码错误（需 UTF-8）in {file_path}:\n{e}") from e

    if raw_data is None:
        return {}

    if not isinstance(raw_data, dict):
        raise InvalidYamlFormatError(
            f"YAML 根必须是字典，当前类型: {type(raw_data).__name__}\n文件: {file_path}"
        )

    normalized: Dict[str, List[Dict[str, Any]]] = {}
    for group_name, value in raw_data.items():
        _validate_group_value(group_name, value, file_path)
        normalized[group_name] = [value] if isinstance(value, dict) else value
    return normalized


def _validate_group_value(group_name: str, value: Any, file_path: Path) -> None:
    """单个用例组必须是非空字典或非空字典列表"""
    if isinstance(value, dict):
        if not value:
            _raise_format_error(group_name, f"组 '{group_name}' 的值不能为空字典。", file_path)
        return

    if isinstance(value, list):
        if not value:
            _raise_format_error(group_name, f"组 '{group_name}' 的值不能为空列表。", file_path)
        for idx, item in enumerate(value):
            if not isinstance(item, dict):
                _raise_format_error(
                    group_name,
                    f"组 '{group_name}' 的第 {idx + 1} 个元素必须是字典，"
                    f"当前类型: {type(item).__name__}，值: {item!r}",
                    file_path,
                )
            if not item:
                _raise_format_error(group_name, f"组 '{group_name}' 的第 {idx + 1} 个元素不能为空字典。", file_path)
        return

    _raise_format_error(
        group_name,
        f"组 '{group_name}' 的值必须是字典或字典列表，当前类型: {type(value).__name__}，值: {value!r}",
        file_path,
    )


def _raise_format_error(group_name: str, message: str, file_path: Path) -> None:
    raise InvalidYamlFormatError(
        f"YAML 格式验证失败 in {file_path}\n"
        f"组: '{group_name}'\n"
        f"{message}"
    )
