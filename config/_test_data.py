"""
Fresh Reviews 测试数据模块

特性：
- 从 test_data/fresh_reviews.yaml 读取静态数据
- 所有记录都是冻结的 pydantic 模型，用例之间无法互相污染
- 账号、邮编支持环境变量覆盖
- 超长文本类记录在代码中生成（YAML 不便表达）
"""
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError, model_validator

from ._path import PROJECT_ROOT

DEFAULT_FIXTURE_FILE = PROJECT_ROOT / "test_data" / "fresh_reviews.yaml"

_LOREM = "Lorem ipsum dolor sit amet, consectetur adipiscing elit. "


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ==================== 记录模型 ====================

class UserRecord(_FrozenModel):
    """测试账号（密码使用 SecretStr，repr 与日志中不会明文出现）"""
    email: str
    password: SecretStr
    name: str

    def as_storage_payload(self) -> Dict[str, str]:
        """写入 localStorage currentUser 的 JSON 结构（不含密码）"""
        return {"email": self.email, "name": self.name, "loggedIn": "true"}


class ReviewRecord(_FrozenModel):
    restaurant_name: str
    food_item: str
    rating: int
    review_text: str


class LocationRecord(_FrozenModel):
    latitude: float
    longitude: float
    zip_code: str


class UsersGroup(_FrozenModel):
    valid: UserRecord
    second_user: UserRecord
    invalid: UserRecord


class ReviewsGroup(_FrozenModel):
    valid: ReviewRecord
    short_review: ReviewRecord
    special_characters: ReviewRecord
    emojis: ReviewRecord
    long_review: ReviewRecord
    max_length: ReviewRecord


class ZipCodes(_FrozenModel):
    valid: str
    invalid: str
    empty: str
    special_chars: str
    too_short: str
    too_long: str
    letters: str


class LocationsGroup(_FrozenModel):
    san_francisco: LocationRecord
    new_york: LocationRecord
    los_angeles: LocationRecord


class InvalidRatings(_FrozenModel):
    too_high: Union[int, float]
    too_low: Union[int, float]
    negative: Union[int, float]
    decimal: Union[int, float]


class RatingBounds(_FrozenModel):
    """评分取值范围，[minimum, maximum] 闭区间内的整数为合法值"""
    minimum: int = 1
    maximum: int = 5
    excellent: int = 5
    good: int = 4
    average: int = 3
    poor: int = 2
    terrible: int = 1
    invalid: InvalidRatings

    @model_validator(mode="after")
    def check_bounds(self):
        if self.minimum > self.maximum:
            raise ValueError(f"评分下限 {self.minimum} 大于上限 {self.maximum}")
        return self

    @property
    def valid_values(self) -> FrozenSet[int]:
        return frozenset(range(self.minimum, self.maximum + 1))


class ValidationMessages(_FrozenModel):
    required: str
    invalid_email: str
    invalid_zip_code: str
    rating_required: str


class FixtureTimeouts(_FrozenModel):
    """用例中使用的等待时长（毫秒）"""
    short: int = 2000
    medium: int = 5000
    long: int = 10000
    extra_long: int = 30000


class UrlPaths(_FrozenModel):
    login: str = "/index.html"
    signup: str = "/signup.html"
    reviews: str = "/reviews.html"
    search: str = "/search.html"


class FixtureData(_FrozenModel):
    """全部测试数据的只读视图"""
    users: UsersGroup
    reviews: ReviewsGroup
    zip_codes: ZipCodes
    locations: LocationsGroup
    ratings: RatingBounds
    validation_messages: ValidationMessages
    timeouts: FixtureTimeouts = FixtureTimeouts()
    url_paths: UrlPaths = UrlPaths()


# ==================== 加载 ====================

# 环境变量 -> (分组, 记录, 字段)
_ENV_OVERRIDES = {
    "TEST_USER_EMAIL": ("users", "valid", "email"),
    "TEST_USER_PASSWORD": ("users", "valid", "password"),
    "TEST_USER_NAME": ("users", "valid", "name"),
    "TEST_USER_2_EMAIL": ("users", "second_user", "email"),
    "TEST_USER_2_PASSWORD": ("users", "second_user", "password"),
    "TEST_USER_2_NAME": ("users", "second_user", "name"),
    "TEST_ZIP_CODE": ("zip_codes", "valid", None),
    "INVALID_ZIP_CODE": ("zip_codes", "invalid", None),
}


def _generated_reviews() -> Dict[str, Dict[str, object]]:
    return {
        "long_review": {
            "restaurant_name": "The Amazing Restaurant with a Very Long Name",
            "food_item": "Special Deluxe Combo Platter",
            "rating": 5,
            "review_text": _LOREM * 20,
        },
        "max_length": {
            "restaurant_name": "A" * 200,
            "food_item": "B" * 200,
            "rating": 3,
            "review_text": "C" * 1000,
        },
    }


def _apply_env_overrides(raw: Dict) -> Dict:
    for var, (group, record, field) in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value is None:
            continue
        section = raw.setdefault(group, {})
        if field is None:
            section[record] = value
        else:
            section.setdefault(record, {})[field] = value
    return raw


def _read_fixture_file(path: Path) -> Dict:
    if not path.exists():
        raise FileNotFoundError(f"测试数据文件不存在: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"测试数据 YAML 解析错误 ({path}): {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"测试数据根节点必须是字典 ({path})")
    return raw


def build_fixture_data(raw: Dict) -> FixtureData:
    """
    由原始字典构建 FixtureData

    Args:
        raw: YAML 解析结果，会被原地补充生成类记录与环境变量覆盖
    """
    reviews = raw.setdefault("reviews", {})
    for key, record in _generated_reviews().items():
        reviews.setdefault(key, record)
    _apply_env_overrides(raw)

    try:
        return FixtureData(**raw)
    except ValidationError as e:
        raise ValueError(f"测试数据校验失败:\n{e}") from e


@lru_cache(maxsize=4)
def _load_cached(path: Path) -> FixtureData:
    return build_fixture_data(_read_fixture_file(path))


def load_fixture_data(path: Optional[Union[str, Path]] = None) -> FixtureData:
    """加载（并缓存）测试数据；记录不可变，可安全地在用例间共享"""
    return _load_cached(Path(path) if path else DEFAULT_FIXTURE_FILE)


def clear_fixture_cache():
    """环境变量变化后需要重新读取时调用"""
    _load_cached.cache_clear()
