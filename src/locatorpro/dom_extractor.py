from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from playwright.sync_api import Error as PlaywrightError

from .errors import ElementNotFound
from .models import AncestorStep, BoundingBox, ElementSnapshot
from .paths import build_position_path, build_specificity_path
from .strategy_generator import POSITION_ATTR_X, POSITION_ATTR_Y, rounded_coordinate

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle

logger = logging.getLogger("locatorpro.capture")

_CAPTURE_SCRIPT = """
(el) => {
  const attrs = {};
  for (const attr of Array.from(el.attributes || [])) {
    attrs[attr.name] = attr.value;
  }
  const rect = el.getBoundingClientRect();
  const className = typeof el.className === 'string'
    ? el.className
    : (el.getAttribute('class') || '');

  const ancestry = [];
  let current = el;
  while (current && current.nodeType === Node.ELEMENT_NODE) {
    let childIndex = 1;
    let typeIndex = 1;
    let sibling = current;
    while ((sibling = sibling.previousElementSibling)) {
      childIndex += 1;
      if (sibling.tagName === current.tagName) typeIndex += 1;
    }
    ancestry.push({
      tag: (current.tagName || '').toLowerCase(),
      id: current.id || '',
      childIndex,
      typeIndex,
    });
    current = current.parentElement;
  }

  return {
    tag: el.tagName.toLowerCase(),
    id: el.id || null,
    className: className || null,
    text: (el.textContent || '').trim() || null,
    attributes: attrs,
    box: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
    ancestry,
  };
}
"""

_MARK_POSITION_SCRIPT = """
(el, [attrX, attrY, x, y]) => {
  el.setAttribute(attrX, String(x));
  el.setAttribute(attrY, String(y));
}
"""


def capture_snapshot(element: ElementHandle, *, mark_position: bool = False) -> ElementSnapshot:
    try:
        payload = element.evaluate(_CAPTURE_SCRIPT)
    except PlaywrightError as exc:
        raise ElementNotFound(f"Element could not be captured: {exc}") from exc

    snapshot = snapshot_from_payload(payload)
    if mark_position:
        _mark_position(element, snapshot.box)
        attributes = dict(snapshot.attributes)
        attributes[POSITION_ATTR_X] = str(rounded_coordinate(snapshot.box.x))
        attributes[POSITION_ATTR_Y] = str(rounded_coordinate(snapshot.box.y))
        snapshot = ElementSnapshot(
            tag=snapshot.tag,
            id=snapshot.id,
            class_name=snapshot.class_name,
            text=snapshot.text,
            attributes=attributes,
            box=snapshot.box,
            xpath=snapshot.xpath,
            css_path=snapshot.css_path,
            ancestry=snapshot.ancestry,
        )
    return snapshot


def snapshot_from_payload(payload: Mapping[str, Any]) -> ElementSnapshot:
    ancestry = tuple(
        AncestorStep(
            tag=str(item.get("tag") or "").lower(),
            id=str(item.get("id") or "") or None,
            child_index=_to_int(item.get("childIndex"), 1),
            type_index=_to_int(item.get("typeIndex"), 1),
        )
        for item in payload.get("ancestry") or []
        if isinstance(item, Mapping)
    )
    box = payload.get("box") or {}
    attributes = {
        str(key): str(value)
        for key, value in (payload.get("attributes") or {}).items()
        if value is not None
    }
    return ElementSnapshot(
        tag=str(payload.get("tag") or ""),
        id=payload.get("id") or None,
        class_name=payload.get("className") or None,
        text=(str(payload.get("text") or "").strip() or None),
        attributes=attributes,
        box=BoundingBox(
            x=_to_float(box.get("x")),
            y=_to_float(box.get("y")),
            width=_to_float(box.get("width")),
            height=_to_float(box.get("height")),
        ),
        xpath=build_position_path(ancestry) or None,
        css_path=build_specificity_path(ancestry) or None,
        ancestry=ancestry,
    )


def _mark_position(element: ElementHandle, box: BoundingBox) -> None:
    x = rounded_coordinate(box.x)
    y = rounded_coordinate(box.y)
    try:
        element.evaluate(_MARK_POSITION_SCRIPT, [POSITION_ATTR_X, POSITION_ATTR_Y, x, y])
    except PlaywrightError as exc:
        raise ElementNotFound(f"Element could not be marked: {exc}") from exc
    logger.debug("Marked element position (%d, %d).", x, y)


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
