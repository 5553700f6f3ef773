from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, Sequence

TEST_ATTRIBUTES = ("data-testid", "data-test", "data-qa")
TEST_ID_VOCABULARY = ("test", "qa", "cypress", "selenium", "playwright", "automation")

INTERACTIVE_TAGS = frozenset({"button", "input", "a", "select", "textarea"})
CLICKABLE_TAGS = frozenset({"button", "input", "a"})
SKIPPED_SCAN_TAGS = frozenset({"script", "style", "meta", "link", "title"})

_UTILITY_CLASS_PATTERNS = (
    re.compile(r"^(p|m)[trblxy]?-\d+$"),
    re.compile(r"^text-(xs|sm|base|lg|xl|\d*xl)$"),
    re.compile(r"^(w|h)-\d+$"),
    re.compile(r"^(bg|text|border)-\w+(-\d+)?$"),
    re.compile(r"^(flex|block|inline|hidden)$"),
    re.compile(r"^[a-z0-9]{6,}$"),
)

IMPLICIT_ROLES: Mapping[str, str] = MappingProxyType(
    {
        "button": "button",
        "select": "combobox",
        "textarea": "textbox",
        "img": "img",
        "nav": "navigation",
        "main": "main",
        "header": "banner",
        "footer": "contentinfo",
        "aside": "complementary",
        "section": "region",
        "article": "article",
        "h1": "heading",
        "h2": "heading",
        "h3": "heading",
        "h4": "heading",
        "h5": "heading",
        "h6": "heading",
    }
)

INPUT_ROLES: Mapping[str, str] = MappingProxyType(
    {
        "button": "button",
        "submit": "button",
        "reset": "button",
        "checkbox": "checkbox",
        "radio": "radio",
        "text": "textbox",
        "email": "textbox",
        "password": "textbox",
        "search": "searchbox",
        "tel": "textbox",
        "url": "textbox",
        "number": "spinbutton",
        "range": "slider",
    }
)


def is_test_like_id(value: str) -> bool:
    lowered = value.lower()
    return any(token in lowered for token in TEST_ID_VOCABULARY)


def is_utility_class(class_name: str) -> bool:
    return any(pattern.search(class_name) for pattern in _UTILITY_CLASS_PATTERNS)


def select_best_class(classes: Sequence[str]) -> str | None:
    cleaned = [item for item in classes if item]
    if not cleaned:
        return None
    semantic = [item for item in cleaned if not is_utility_class(item)]
    if semantic:
        return semantic[0]
    return cleaned[0]


def implicit_roles(tag: str, attributes: Mapping[str, str]) -> list[str]:
    normalized = tag.strip().lower()
    if normalized == "a":
        return ["link"] if attributes.get("href") else []
    if normalized == "input":
        input_type = str(attributes.get("type") or "").strip().lower()
        return [INPUT_ROLES.get(input_type, "textbox")]
    role = IMPLICIT_ROLES.get(normalized)
    return [role] if role else []


def has_test_attribute(attributes: Mapping[str, str]) -> bool:
    return any(attr in attributes for attr in TEST_ATTRIBUTES)
