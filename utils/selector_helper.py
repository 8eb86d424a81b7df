from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
import json

import allure
from playwright.sync_api import Page, Locator, TimeoutError as PlaywrightTimeoutError, Error as PlaywrightError

from config import settings
from utils.exceptions import ElementNotFoundError, InvalidDescriptorError

logger = logging.getLogger(__name__)

STRATEGY_KINDS = ("css", "test_id", "attribute", "role", "label", "placeholder", "text", "xpath", "raw")


# ---- Strategy ----
@dataclass(frozen=True)
class Strategy:
    """
    单个候选定位策略（带标签的变体）。
    - kind: STRATEGY_KINDS 之一
    - value: 选择器 / test id / 角色 / 文本等
    - name: attribute 的属性名，或 role 的可访问名称
    """
    kind: str
    value: str
    name: Optional[str] = None

    def __post_init__(self):
        if self.kind not in STRATEGY_KINDS:
            raise InvalidDescriptorError(f"未知的定位策略: {self.kind}, 必须是 {STRATEGY_KINDS}")

    @classmethod
    def css(cls, selector: str) -> "Strategy":
        return cls("css", selector)

    @classmethod
    def test_id(cls, test_id: str) -> "Strategy":
        return cls("test_id", test_id)

    @classmethod
    def attribute(cls, attr: str, value: str) -> "Strategy":
        return cls("attribute", value, name=attr)

    @classmethod
    def role(cls, role: str, name: Optional[str] = None) -> "Strategy":
        return cls("role", role, name=name)

    @classmethod
    def label(cls, text: str) -> "Strategy":
        return cls("label", text)

    @classmethod
    def placeholder(cls, text: str) -> "Strategy":
        return cls("placeholder", text)

    @classmethod
    def text(cls, text: str) -> "Strategy":
        return cls("text", text)

    @classmethod
    def xpath(cls, expression: str) -> "Strategy":
        return cls("xpath", expression)

    @classmethod
    def raw(cls, selector: str) -> "Strategy":
        return cls("raw", selector)

    def to_locator(self, ctx: Any) -> Locator:
        """在 Page（或 Locator）上构建对应的 Playwright Locator，不等待"""
        if self.kind in ("css", "raw"):
            return ctx.locator(self.value)
        if self.kind == "test_id":
            return ctx.get_by_test_id(self.value)
        if self.kind == "attribute":
            return ctx.locator(f'[{self.name}="{self.value}"]')
        if self.kind == "role":
            if self.name:
                return ctx.get_by_role(self.value, name=self.name)
            return ctx.get_by_role(self.value)
        if self.kind == "label":
            return ctx.get_by_label(self.value)
        if self.kind == "placeholder":
            return ctx.get_by_placeholder(self.value)
        if self.kind == "text":
            return ctx.get_by_text(self.value)
        return ctx.locator(f"xpath={self.value}")

    def formatted(self, **kwargs) -> "Strategy":
        def fmt(s: Optional[str]) -> Optional[str]:
            if not s or "{" not in s:
                return s
            try:
                return s.format(**kwargs)
            except (KeyError, IndexError, ValueError) as e:
                logger.warning(f"Strategy formatting failed for '{s}': {e}")
                return s

        return Strategy(self.kind, fmt(self.value), fmt(self.name))

    def __str__(self) -> str:
        if self.name:
            return f"{self.kind}={self.value} ({self.name})"
        return f"{self.kind}={self.value}"


# ---- ElementDescriptor ----
@dataclass(frozen=True)
class ElementDescriptor:
    """
    一个逻辑元素的有序候选策略列表。

    解析时按声明顺序尝试，第一个在当前 DOM 中有匹配的策略胜出；
    策略之间不会合并。sensitive=True 时输入的值在日志中脱敏。
    """
    description: str
    strategies: Tuple[Strategy, ...]
    sensitive: bool = False

    def __post_init__(self):
        strategies = tuple(self.strategies or ())
        if not strategies:
            raise InvalidDescriptorError(f"元素 '{self.description}' 至少需要一个定位策略")
        object.__setattr__(self, "strategies", strategies)

    @classmethod
    def of(cls, description: str, *strategies: Union[Strategy, str], sensitive: bool = False) -> "ElementDescriptor":
        """字符串参数按 css 策略处理"""
        return cls(
            description=description,
            strategies=tuple(s if isinstance(s, Strategy) else Strategy.css(s) for s in strategies),
            sensitive=sensitive,
        )

    @property
    def primary(self) -> Strategy:
        return self.strategies[0]

    def formatted(self, **kwargs) -> "ElementDescriptor":
        """替换模板占位符，返回新的 ElementDescriptor"""
        description = self.description
        try:
            description = description.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            pass
        return ElementDescriptor(
            description=description,
            strategies=tuple(s.formatted(**kwargs) for s in self.strategies),
            sensitive=self.sensitive,
        )

    def __str__(self) -> str:
        return self.description


DescriptorLike = Union[ElementDescriptor, str]


def as_descriptor(target: DescriptorLike) -> ElementDescriptor:
    if isinstance(target, ElementDescriptor):
        return target
    if isinstance(target, str):
        return ElementDescriptor.of(target, target)
    raise InvalidDescriptorError(f"Unsupported descriptor type: {type(target)}")


# ---- ResolveInfo ----
@dataclass(frozen=True)
class ResolveInfo:
    """
    一次解析的元数据。
    - strategy: 胜出的策略（无匹配时为首选策略）
    - index: 该策略在描述符中的位置
    - matched: 是否有策略命中；False 表示回落到首选策略
    - attempts: 本次依次尝试过的策略及其匹配数量
    """
    description: str
    strategy: str
    index: int
    matched: bool
    attempts: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "strategy": self.strategy,
            "index": self.index,
            "matched": self.matched,
            "attempts": self.attempts,
        }


# ---- Internal helpers ----
def _attach_to_allure(name: str, payload: Any, kind: str = "application/json"):
    """Attach structured info to Allure; attach failures are logged and ignored."""
    try:
        if kind == "application/json":
            content = json.dumps(payload, ensure_ascii=False, indent=2)
            allure.attach(content, name=name, attachment_type=allure.attachment_type.JSON)
        else:
            allure.attach(str(payload), name=name, attachment_type=allure.attachment_type.TEXT)
    except Exception:
        logger.debug("Allure attach failed for %s", name, exc_info=True)


def _record_resolution(info: ResolveInfo):
    logger.debug("Resolve %s: %s", info.description, json.dumps(info.to_dict(), ensure_ascii=False))
    if settings.allure.attach_resolve_info:
        _attach_to_allure(f"resolve: {info.description}", info.to_dict())


# ---- LiveElement ----
class LiveElement:
    """
    惰性元素句柄，不是快照。

    每次使用都会按顺序重新评估策略，因此 DOM 变化后（例如元素后来才渲染）
    同一个句柄会指向新的匹配。没有任何策略匹配时回落到首选策略，
    由 Playwright 自身的等待 / 超时报告失败。
    """

    def __init__(self, page: Page, descriptor: DescriptorLike, root: Optional[Locator] = None):
        self.page = page
        self.descriptor = as_descriptor(descriptor)
        # 非空时在该 Locator 范围内解析（例如列表中的某一张卡片）
        self.root = root
        self.last_info: Optional[ResolveInfo] = None

    @property
    def _ctx(self) -> Any:
        return self.root if self.root is not None else self.page

    @property
    def description(self) -> str:
        return self.descriptor.description

    @property
    def sensitive(self) -> bool:
        return self.descriptor.sensitive

    def resolve_with_info(self) -> Tuple[Locator, ResolveInfo]:
        attempts: List[Dict[str, Any]] = []
        for index, strategy in enumerate(self.descriptor.strategies):
            loc = strategy.to_locator(self._ctx)
            try:
                count = loc.count()
            except PlaywrightError as e:
                attempts.append({"strategy": str(strategy), "error": str(e)})
                logger.debug("strategy %s failed for %s", strategy, self.description, exc_info=True)
                continue
            attempts.append({"strategy": str(strategy), "count": count})
            if count > 0:
                return loc, self._remember(ResolveInfo(self.description, str(strategy), index, True, attempts))

        primary = self.descriptor.primary
        info = ResolveInfo(self.description, str(primary), 0, False, attempts)
        return primary.to_locator(self._ctx), self._remember(info)

    def _remember(self, info: ResolveInfo) -> ResolveInfo:
        # 轮询时结果通常不变，只在结果变化时记录
        previous = self.last_info
        if previous is None or (previous.strategy, previous.matched) != (info.strategy, info.matched):
            _record_resolution(info)
        self.last_info = info
        return info

    @property
    def locator(self) -> Locator:
        """当前胜出策略的全部匹配"""
        loc, _info = self.resolve_with_info()
        return loc

    @property
    def first(self) -> Locator:
        """单元素操作使用文档顺序中的第一个匹配"""
        return self.locator.first

    def nth(self, index: int) -> Locator:
        return self.locator.nth(index)

    def count(self) -> int:
        try:
            return self.locator.count()
        except PlaywrightError:
            return 0

    def all_texts(self) -> List[str]:
        try:
            return self.locator.all_text_contents()
        except PlaywrightError:
            return []

    def __repr__(self) -> str:
        return f"LiveElement({self.description!r})"


# ---- Public API ----
class SelectorHelper:
    @staticmethod
    def resolve(page: Page, descriptor: DescriptorLike) -> LiveElement:
        """返回惰性句柄；解析本身不会因为无匹配而报错"""
        return LiveElement(page, descriptor)

    @staticmethod
    def resolve_with_meta(page: Page, descriptor: DescriptorLike) -> Tuple[Locator, ResolveInfo]:
        return LiveElement(page, descriptor).resolve_with_info()

    @staticmethod
    def exists(page: Page, descriptor: DescriptorLike) -> bool:
        """立即检查是否有任一策略匹配（不等待）"""
        _loc, info = LiveElement(page, descriptor).resolve_with_info()
        return info.matched

    @staticmethod
    def find(page: Page, descriptor: DescriptorLike, timeout: Optional[int] = None) -> Locator:
        """
        严格查找：等待元素挂载到 DOM，超时抛出 ElementNotFoundError
        """
        timeout = timeout if timeout is not None else settings.timeouts.visibility
        element = LiveElement(page, descriptor)
        try:
            element.first.wait_for(state="attached", timeout=timeout)
        except PlaywrightTimeoutError as e:
            _attach_to_allure("find_failed", {
                "description": element.description,
                "timeout_ms": timeout,
                "resolve": element.last_info.to_dict() if element.last_info else None,
            })
            raise ElementNotFoundError(
                f"find: 元素 '{element.description}' 在 {timeout}ms 内未出现", element.description
            ) from e
        return element.first
