"""Selector string construction.

Every selector that embeds an attribute value or visible text is built here so
quotes and backslashes in page content cannot break the selector syntax.
"""

from __future__ import annotations

import re

_CSS_SAFE_ID_PATTERN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_EXACT_TEXT_PATTERN = re.compile(r'^text="((?:[^"\\]|\\.)*)"$', re.DOTALL)
_TAG_TEXT_PATTERN = re.compile(r'^([A-Za-z][A-Za-z0-9-]*|\*):has-text\("((?:[^"\\]|\\.)*)"\)$', re.DOTALL)


def escape_css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def unescape_css_string(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value, flags=re.DOTALL)


def escape_css_identifier(value: str) -> str:
    """Escape ``value`` for use after ``#`` or ``.`` in a CSS selector.

    A digit may not start an identifier, even after a single leading hyphen.
    """
    if value == "-":
        return "\\-"
    escaped: list[str] = []
    for index, char in enumerate(value):
        leading = index == 0 or (index == 1 and value[0] == "-")
        if char.isdigit() and leading:
            escaped.append(f"\\{ord(char):x} ")
        elif char.isalnum() or char in ("-", "_"):
            escaped.append(char)
        else:
            escaped.append(f"\\{ord(char):x} ")
    return "".join(escaped)


def is_css_safe_id(value: str) -> bool:
    return bool(_CSS_SAFE_ID_PATTERN.fullmatch(value.strip()))


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    pieces = value.split("'")
    quoted = [f"'{piece}'" for piece in pieces]
    return "concat(" + ", \"'\", ".join(quoted) + ")"


def id_selector(value: str) -> str:
    if is_css_safe_id(value):
        return f"#{value}"
    return f'[id="{escape_css_string(value)}"]'


def attribute_selector(attr: str, value: str, *, tag: str = "") -> str:
    return f'{tag}[{attr}="{escape_css_string(value)}"]'


def class_selector(class_name: str, *, tag: str = "") -> str:
    return f"{tag}.{escape_css_identifier(class_name)}"


def exact_text_selector(text: str) -> str:
    return f'text="{escape_css_string(text)}"'


def has_text_selector(text: str, *, tag: str = "") -> str:
    return f'{tag}:has-text("{escape_css_string(text)}")'


def parse_exact_text_selector(selector: str) -> str | None:
    match = _EXACT_TEXT_PATTERN.fullmatch(selector)
    if not match:
        return None
    return unescape_css_string(match.group(1))


def parse_has_text_selector(selector: str) -> tuple[str, str] | None:
    match = _TAG_TEXT_PATTERN.fullmatch(selector)
    if not match:
        return None
    return match.group(1).lower(), unescape_css_string(match.group(2))


def parse_attribute_value(selector: str, attr: str) -> str | None:
    pattern = re.compile(rf'\[{re.escape(attr)}="((?:[^"\\]|\\.)*)"\]')
    match = pattern.search(selector)
    if not match:
        return None
    return unescape_css_string(match.group(1))
