import random
import string
from typing import Dict, Optional, Union

from faker import Faker

from utils.logger import logger


RESTAURANT_PREFIXES = ("The", "La", "El", "Le")
RESTAURANT_ADJECTIVES = ("Golden", "Silver", "Royal", "Grand", "Fresh", "Urban")
RESTAURANT_TYPES = ("Restaurant", "Cafe", "Bistro", "Kitchen", "Grill", "House")
FOOD_ITEMS = (
    "Pizza", "Burger", "Pasta", "Salad", "Steak", "Sushi",
    "Tacos", "Ramen", "Sandwich", "Soup", "Rice Bowl", "Curry",
)
REVIEW_TEMPLATES = {
    "short": (
        "Great food!",
        "Loved it!",
        "Highly recommended!",
        "Amazing experience!",
        "Will come back!",
    ),
    "medium": (
        "The food was absolutely delicious and the service was excellent.",
        "A wonderful dining experience with great atmosphere and friendly staff.",
        "Fresh ingredients and perfectly cooked. Highly recommend this place!",
        "Best meal I've had in a long time. The flavors were amazing.",
    ),
    "long": (
        "I had the most incredible dining experience here. The ambiance was perfect, the staff was "
        "attentive and knowledgeable, and the food exceeded all expectations. Every dish was crafted "
        "with care and the flavors were extraordinary. I would definitely return and recommend this "
        "to anyone looking for quality dining.",
        "This restaurant truly stands out among the rest. From the moment we walked in, we were greeted "
        "warmly and seated promptly. The menu offered a great variety of options, and our server was "
        "helpful in making recommendations. The food arrived quickly and was presented beautifully. "
        "Each bite was a delight, and the portions were generous. We left completely satisfied and "
        "already planning our next visit.",
    ),
}


# ==================== 核心生成器 ====================
class ReviewDataGenerator:
    """点评数据生成器 - 基于 Faker 构建，传入 seed 可复现"""

    def __init__(self, locale: str = "en_US", seed: Optional[int] = None):
        self.faker: Faker = Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)
        logger.debug(f"ReviewDataGenerator initialized (locale={locale}, seed={seed})")

    # ---------- 基础类型生成 ----------
    @staticmethod
    def random_string(length: int = 10, chars: str = string.ascii_letters + string.digits) -> str:
        """生成随机字符串"""
        return "".join(random.choices(chars, k=length))

    def generate_email(self, domain: str = "example.com") -> str:
        """生成随机邮箱"""
        return f"test{self.faker.pystr(min_chars=8, max_chars=8)}@{domain}"

    # ---------- 点评业务数据 ----------
    def generate_restaurant_name(self) -> str:
        """例如 'The Golden Bistro'"""
        return " ".join((
            self.faker.random_element(RESTAURANT_PREFIXES),
            self.faker.random_element(RESTAURANT_ADJECTIVES),
            self.faker.random_element(RESTAURANT_TYPES),
        ))

    def generate_food_item(self) -> str:
        return self.faker.random_element(FOOD_ITEMS)

    def generate_rating(self, minimum: int = 1, maximum: int = 5) -> int:
        return self.faker.random_int(min=minimum, max=maximum)

    def generate_review_text(self, length: str = "medium") -> str:
        """
        生成点评正文

        Args:
            length: short / medium / long
        """
        if length not in REVIEW_TEMPLATES:
            raise ValueError(f"无效的长度: {length}, 必须是 {tuple(REVIEW_TEMPLATES)}")
        return self.faker.random_element(REVIEW_TEMPLATES[length])

    def generate_review(self, length: str = "medium") -> Dict[str, Union[str, int]]:
        """生成一条完整点评，键与 ReviewsPage.fill_review_form 参数一致"""
        return {
            "restaurant_name": self.generate_restaurant_name(),
            "food_item": self.generate_food_item(),
            "rating": self.generate_rating(),
            "review_text": self.generate_review_text(length),
        }
