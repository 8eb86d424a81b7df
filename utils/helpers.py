"""
测试辅助函数：格式校验、XSS 检查、距离计算、测试元数据
"""
import math
import re
from datetime import datetime, timezone
from typing import Any, Dict

from config import settings
from utils.data_faker import ReviewDataGenerator

EARTH_RADIUS_MILES = 3959

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_US_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
_XSS_PATTERNS = [
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"onerror=", re.IGNORECASE),
    re.compile(r"onload=", re.IGNORECASE),
    re.compile(r"onclick=", re.IGNORECASE),
]
_HTML_ESCAPES = {"<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}


# ==================== 格式校验 ====================

def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def is_valid_us_zip_code(zip_code: str) -> bool:
    """5 位或 ZIP+4 格式"""
    return bool(_US_ZIP_RE.match(zip_code or ""))


def contains_xss_patterns(text: str) -> bool:
    return any(pattern.search(text or "") for pattern in _XSS_PATTERNS)


def sanitize_string(text: str) -> str:
    """转义 < > " '，用于断言页面以文本方式渲染了用户输入"""
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in text)


# ==================== 地理 ====================

def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine 公式计算两点间距离

    Args:
        lat1: 起点纬度
        lon1: 起点经度
        lat2: 终点纬度
        lon2: 终点经度

    Returns:
        距离（英里）
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


# ==================== 元数据 ====================

def get_timestamp() -> str:
    """可用于文件名的 UTC 时间戳"""
    return datetime.now(timezone.utc).isoformat().replace(":", "-").replace(".", "-")


def create_test_id() -> str:
    millis = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"test_{millis}_{ReviewDataGenerator.random_string(6)}"


def generate_test_metadata() -> Dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.env,
        "base_url": settings.base_url,
        "browser": settings.browser.type,
        "headless": settings.browser.headless,
    }
