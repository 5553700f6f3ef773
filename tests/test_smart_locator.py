import logging

import pytest
from playwright.sync_api import Error as PlaywrightError

from locatorpro.composite import CompositeLocator
from locatorpro.dom_extractor import snapshot_from_payload
from locatorpro.errors import ElementNotFound, EmptyStrategyList, NoMatchFound
from locatorpro.locator_engine import build_locator_result
from locatorpro.models import GenerationConfig, Strategy
from locatorpro.related_text import innermost_scope
from locatorpro.smart_locator import SmartLocator

_BUTTON_PAYLOAD = {
    "tag": "button",
    "id": "submit-btn",
    "className": None,
    "text": "Submit Form",
    "attributes": {"id": "submit-btn", "data-testid": "submit-button"},
    "box": {"x": 10, "y": 10, "width": 120, "height": 32},
    "ancestry": [
        {"tag": "button", "id": "submit-btn", "childIndex": 3, "typeIndex": 1},
        {"tag": "form", "id": "checkout", "childIndex": 1, "typeIndex": 1},
        {"tag": "body", "id": "", "childIndex": 2, "typeIndex": 1},
        {"tag": "html", "id": "", "childIndex": 1, "typeIndex": 1},
    ],
}


class _FakeElement:
    def __init__(self, payload: dict[str, object]) -> None:
        self.payload = payload

    def evaluate(self, _script: str, arg: object = None) -> object:
        return self.payload if arg is None else None


class _FakeLocator:
    def __init__(self, label: str, count: int = 0, element: _FakeElement | None = None, fail: bool = False) -> None:
        self.label = label
        self._count = count
        self._element = element
        self._fail = fail

    @property
    def first(self) -> "_FakeLocator":
        return self

    def count(self) -> int:
        if self._fail:
            raise PlaywrightError("Target page, context or browser has been closed")
        return self._count

    def element_handle(self) -> _FakeElement | None:
        return self._element

    def or_(self, other: "_FakeLocator") -> "_FakeLocator":
        return _FakeLocator(f"{self.label} | {other.label}", self._count + other._count)


class _FakePage:
    """Answers element queries from canned counts instead of a live DOM."""

    def __init__(
        self,
        *,
        elements: dict[str, _FakeElement] | None = None,
        css_counts: dict[str, int] | None = None,
        xpath_counts: dict[str, int] | None = None,
        text_count: int = 1,
        scan_rows: list[dict[str, object]] | None = None,
        related_rows: list[dict[str, object]] | None = None,
    ) -> None:
        self.elements = elements or {}
        self.css_counts = css_counts or {}
        self.xpath_counts = xpath_counts or {}
        self.text_count = text_count
        self.scan_rows = scan_rows or []
        self.related_rows = related_rows or []
        self.queried: list[str] = []

    def query_selector(self, selector: str) -> _FakeElement | None:
        self.queried.append(selector)
        if selector.startswith("!!"):
            raise PlaywrightError("Unexpected token")
        return self.elements.get(selector)

    def query_selector_all(self, selector: str) -> list[object]:
        return [object()] * self.css_counts.get(selector, 0)

    def locator(self, selector: str) -> _FakeLocator:
        if selector.startswith("xpath="):
            return _FakeLocator(selector, self.xpath_counts.get(selector[len("xpath="):], 0))
        return _FakeLocator(selector, self.css_counts.get(selector, 0))

    def get_by_test_id(self, test_id: str) -> _FakeLocator:
        return _FakeLocator(f"test_id:{test_id}", self.css_counts.get(f'[data-testid="{test_id}"]', 0))

    def get_by_text(self, text: str, exact: bool = False) -> _FakeLocator:
        return _FakeLocator(f"text:{text}", self.text_count)

    def get_by_role(self, role: str, **_kwargs: object) -> _FakeLocator:
        return _FakeLocator(f"role:{role}")

    def get_by_label(self, label: str, exact: bool = False) -> _FakeLocator:
        return _FakeLocator(f"label:{label}")

    def evaluate(self, _script: str, arg: object) -> object:
        if isinstance(arg, dict) and "variations" in arg:
            return self.scan_rows
        if isinstance(arg, dict) and "targetText" in arg:
            return self.related_rows
        return self.text_count


def _button_page(**overrides: object) -> _FakePage:
    options: dict[str, object] = {
        "elements": {"#submit-btn": _FakeElement(_BUTTON_PAYLOAD)},
        "css_counts": {
            '[data-testid="submit-button"]': 1,
            "#submit-btn": 1,
            "button": 7,
            "button#submit-btn": 1,
        },
        "xpath_counts": {"//html/body/form/button": 1},
    }
    options.update(overrides)
    return _FakePage(**options)  # type: ignore[arg-type]


def test_generate_selectors_validates_and_ranks_strategies() -> None:
    strategies = SmartLocator(_button_page()).generate_selectors("#submit-btn")  # type: ignore[arg-type]
    selectors = [item.selector for item in strategies]

    assert selectors[0] == '[data-testid="submit-button"]'
    assert "#submit-btn" in selectors
    assert "button" not in selectors
    assert "role=button" not in selectors
    assert all(item.is_unique for item in strategies)
    assert "button#submit-btn" in selectors
    assert [item.priority for item in strategies] == sorted(item.priority for item in strategies)


def test_generate_selectors_falls_back_to_original_selector() -> None:
    page = _FakePage()

    strategies = SmartLocator(page).generate_selectors(".missing")  # type: ignore[arg-type]

    assert len(strategies) == 1
    assert strategies[0].selector == ".missing"
    assert strategies[0].reliability == 0.5
    assert page.queried == [".missing"]


def test_generate_selectors_survives_invalid_selector() -> None:
    strategies = SmartLocator(_FakePage()).generate_selectors("!!bad")  # type: ignore[arg-type]
    assert [item.selector for item in strategies] == ["!!bad"]


def test_locate_reports_primary_and_confidence() -> None:
    result = SmartLocator(_button_page()).locate(_FakeElement(_BUTTON_PAYLOAD))  # type: ignore[arg-type]
    assert result.primary_selector == '[data-testid="submit-button"]'
    assert 0.0 < result.confidence <= 1.0
    assert result.snapshot.id == "submit-btn"


def test_describe_strategies_separates_valid_from_generated() -> None:
    info = SmartLocator(_button_page()).describe_strategies("#submit-btn")  # type: ignore[arg-type]

    all_selectors = [item.selector for item in info.all_strategies]
    valid_selectors = [item.selector for item in info.valid_strategies]
    assert "button" in all_selectors
    assert "button" not in valid_selectors
    assert info.recommended_selector == '[data-testid="submit-button"]'
    assert all(item.match_count is None for item in info.all_strategies)


def test_describe_strategies_for_unknown_selector() -> None:
    info = SmartLocator(_FakePage()).describe_strategies("#nope")  # type: ignore[arg-type]
    assert [item.selector for item in info.all_strategies] == ["#nope"]
    assert info.valid_strategies == []
    assert info.recommended_selector == "#nope"


def test_find_by_test_id_offers_attribute_id_and_class_fallbacks() -> None:
    composite = SmartLocator(_FakePage()).find_by_test_id("cart")  # type: ignore[arg-type]

    assert isinstance(composite, CompositeLocator)
    assert [item.selector for item in composite.strategies] == [
        '[data-testid="cart"]',
        '[data-test="cart"]',
        '[data-qa="cart"]',
        "#cart",
        ".cart",
    ]
    assert composite.primary.kind == "data-testid"


def test_find_by_text_builds_xpath_and_text_strategies_per_variation() -> None:
    composite = SmartLocator(_FakePage()).find_by_text("Log in", fallbacks=["Sign in"])  # type: ignore[arg-type]

    strategies = composite.strategies
    assert len(strategies) == 10
    assert [item.priority for item in strategies] == list(range(1, 11))
    assert strategies[0].selector == "//div[normalize-space(text())='Log in' and not(descendant::*[text()])]"
    assert strategies[4].selector == 'text="Log in"'
    assert strategies[5].selector == "//div[normalize-space(text())='Sign in' and not(descendant::*[text()])]"


def test_find_by_role_queries_role_and_name() -> None:
    page = _FakePage()
    composite = SmartLocator(page).find_by_role("button", name="Close")  # type: ignore[arg-type]

    assert page.queried == ['[role="button"][aria-label="Close"]']
    assert composite.primary.selector == '[role="button"][aria-label="Close"]'


def test_find_by_selector_wraps_generated_strategies() -> None:
    composite = SmartLocator(_button_page()).find_by_selector("#submit-btn")  # type: ignore[arg-type]
    assert composite.primary.selector == '[data-testid="submit-button"]'
    assert composite.resolve().label == "test_id:submit-button"


def test_find_by_visible_text_uses_best_scanned_element() -> None:
    rows = [
        {
            "tag": "div",
            "id": None,
            "className": None,
            "texts": {"textContent": "Checkout now"},
            "attributes": {},
            "isVisible": True,
            "hasClickHandler": False,
            "box": {"x": 0, "y": 0, "width": 1200, "height": 900},
        },
        {
            "tag": "button",
            "id": "checkout",
            "className": "btn",
            "texts": {"textContent": "Checkout"},
            "attributes": {"id": "checkout", "class": "btn", "data-testid": "checkout-btn"},
            "isVisible": True,
            "hasClickHandler": False,
            "box": {"x": 0, "y": 0, "width": 120, "height": 32},
        },
    ]
    composite = SmartLocator(_FakePage(scan_rows=rows)).find_by_visible_text(  # type: ignore[arg-type]
        "Checkout", fallbacks=["Proceed"], max_results=3
    )

    assert [item.selector for item in composite.strategies] == [
        'text="Checkout"',
        '[data-testid="checkout-btn"]',
        "#checkout",
    ]


def test_find_by_visible_text_without_matches() -> None:
    with pytest.raises(NoMatchFound) as info:
        SmartLocator(_FakePage()).find_by_visible_text("Nothing here")  # type: ignore[arg-type]
    assert info.value.stage == "visible-text"


def test_find_by_visible_text_with_nothing_to_build_from() -> None:
    rows = [
        {
            "tag": "p",
            "id": None,
            "className": "a b c",
            "texts": {"textContent": "Terms " * 30},
            "attributes": {},
            "isVisible": True,
            "hasClickHandler": False,
            "box": {"x": 0, "y": 0, "width": 300, "height": 40},
        }
    ]
    with pytest.raises(EmptyStrategyList):
        SmartLocator(_FakePage(scan_rows=rows)).find_by_visible_text("Terms")  # type: ignore[arg-type]


def test_find_by_related_text_targets_the_matching_row() -> None:
    listing = "Galaxy S24 $799 Add to Cart iPhone 15 Pro $999 Add to Cart"

    def row(product: str) -> dict[str, object]:
        return {
            "tag": "button",
            "id": None,
            "className": None,
            "text": "Add to Cart",
            "value": "",
            "attributes": {"name": "add"},
            "isVisible": True,
            "isInteractive": True,
            "ancestors": [
                {"tag": "li", "className": "product", "text": product, "depth": 1},
                {"tag": "ul", "className": "products", "text": listing, "depth": 2},
                {"tag": "section", "className": "", "text": listing, "depth": 3},
            ],
        }

    page = _FakePage(related_rows=[row("Galaxy S24 $799 Add to Cart"), row("iPhone 15 Pro $999 Add to Cart")])
    locator = SmartLocator(page)  # type: ignore[arg-type]

    single = locator.find_by_related_text("Add to Cart", "iPhone 15 Pro")
    assert [item.selector for item in single.strategies] == [innermost_scope('li:has-text("iPhone 15 Pro")', '[name="add"]')]

    several = locator.find_by_related_text("Add to Cart", "iPhone 15 Pro", max_strategies=5)
    assert several.strategies[-1].selector == innermost_scope(
        '.product:has-text("iPhone 15 Pro")', 'button:has-text("Add to Cart")'
    )


def test_find_by_related_text_without_candidates() -> None:
    with pytest.raises(NoMatchFound):
        SmartLocator(_FakePage()).find_by_related_text("zzz-nonexistent", "also-nonexistent")  # type: ignore[arg-type]


def test_enhance_locator_regenerates_strategies() -> None:
    page = _button_page()
    existing = _FakeLocator("#submit-btn", count=1, element=_FakeElement(_BUTTON_PAYLOAD))

    composite = SmartLocator(page).enhance_locator(existing)  # type: ignore[arg-type]

    assert composite.primary.selector == '[data-testid="submit-button"]'


def test_enhance_locator_requires_an_element() -> None:
    locator = SmartLocator(_FakePage())  # type: ignore[arg-type]
    with pytest.raises(ElementNotFound):
        locator.enhance_locator(_FakeLocator("#gone", count=0))  # type: ignore[arg-type]
    with pytest.raises(ElementNotFound):
        locator.enhance_locator(_FakeLocator("#closed", fail=True))  # type: ignore[arg-type]


def test_validate_locator() -> None:
    locator = SmartLocator(_FakePage())  # type: ignore[arg-type]
    assert locator.validate_locator(_FakeLocator("#a", count=2))  # type: ignore[arg-type]
    assert not locator.validate_locator(_FakeLocator("#b", count=0))  # type: ignore[arg-type]
    assert not locator.validate_locator(_FakeLocator("#c", fail=True))  # type: ignore[arg-type]


def test_validate_strategies_drops_unmatched() -> None:
    page = _FakePage(css_counts={"#a": 1})
    strategies = [
        Strategy(kind="id", selector="#a", priority=6, description="a"),
        Strategy(kind="id", selector="#b", priority=6, description="b"),
    ]
    assert [item.selector for item in SmartLocator(page).validate_strategies(strategies)] == ["#a"]  # type: ignore[arg-type]


def test_options_mapping_and_log_level() -> None:
    package_logger = logging.getLogger("locatorpro")
    previous = package_logger.level
    try:
        locator = SmartLocator(_FakePage(), {"maxStrategies": 2}, log_level="debug")  # type: ignore[arg-type]
        assert isinstance(locator.config, GenerationConfig)
        assert locator.config.max_strategies == 2
        assert package_logger.level == logging.DEBUG
        assert len(locator.generate_selectors("#submit-btn")) == 1
    finally:
        package_logger.setLevel(previous)


def test_engine_without_document_returns_unvalidated_strategies() -> None:
    snapshot = snapshot_from_payload(_BUTTON_PAYLOAD)

    result = build_locator_result(snapshot, GenerationConfig(max_strategies=3))

    assert [item.selector for item in result.strategies] == [
        '[data-testid="submit-button"]',
        "#submit-btn",
        "role=button",
    ]
    assert all(item.is_unique is None for item in result.strategies)
    assert result.primary_selector == '[data-testid="submit-button"]'
    assert result.confidence == pytest.approx((0.95 + 0.8 + 0.55) / 3)


def test_find_by_test_id_escapes_numeric_class_fallback() -> None:
    composite = SmartLocator(_FakePage()).find_by_test_id("2col")  # type: ignore[arg-type]
    selectors = [item.selector for item in composite.strategies]
    assert selectors[3] == '[id="2col"]'
    assert selectors[4] == ".\\32 col"
