from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Sequence

from .models import BoundingBox, MatchType, ScoredCandidate, ScoringWeights, Strategy, StrategyKind
from .selector_rules import CLICKABLE_TAGS, INTERACTIVE_TAGS, SKIPPED_SCAN_TAGS, has_test_attribute
from .selector_text import attribute_selector, class_selector, exact_text_selector, id_selector

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("locatorpro.scan")

MAX_TEXT_STRATEGY_LENGTH = 100
MIN_STRATEGIES_BEFORE_RUNNERS_UP = 3
RUNNER_UP_LIMIT = 3

_SCAN_SCRIPT = """
({ variations, elementTypes, skipped }) => {
  const lowered = variations.map((item) => item.toLowerCase()).filter(Boolean);
  const rows = [];
  for (const el of Array.from(document.querySelectorAll('*'))) {
    const tag = el.tagName.toLowerCase();
    if (skipped.includes(tag)) continue;
    if (!el.offsetParent && tag !== 'html' && tag !== 'body') continue;
    if (elementTypes.length && !elementTypes.includes(tag)) continue;

    const texts = {
      textContent: (el.textContent || '').trim(),
      innerText: (el.innerText || '').trim(),
      value: el.getAttribute('value') || '',
      placeholder: el.getAttribute('placeholder') || '',
      ariaLabel: el.getAttribute('aria-label') || '',
      title: el.getAttribute('title') || '',
    };
    const hit = Object.values(texts).some((text) => {
      const lower = text.toLowerCase();
      return lower && lowered.some((target) => lower.includes(target) || target.includes(lower));
    });
    if (!hit) continue;

    const attrs = {};
    for (const attr of Array.from(el.attributes || [])) {
      attrs[attr.name] = attr.value;
    }
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    rows.push({
      tag,
      id: el.id || null,
      className: typeof el.className === 'string' ? el.className : null,
      texts,
      attributes: attrs,
      isVisible: rect.width > 0 && rect.height > 0
        && style.visibility !== 'hidden' && style.display !== 'none',
      hasClickHandler: el.hasAttribute('onclick'),
      box: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
    });
  }
  return rows;
}
"""

_SEARCHABLE_KEYS = ("textContent", "innerText", "value", "placeholder", "ariaLabel", "title")


def scan_for_text(
    page: Page,
    variations: Sequence[str],
    element_types: Sequence[str] | None = None,
) -> list[ScoredCandidate]:
    """Enumerate visible elements whose text or labels match a text variation."""
    cleaned = [item for item in variations if item and item.strip()]
    if not cleaned:
        return []
    rows = page.evaluate(
        _SCAN_SCRIPT,
        {
            "variations": cleaned,
            "elementTypes": [item.lower() for item in element_types or []],
            "skipped": sorted(SKIPPED_SCAN_TAGS),
        },
    )
    candidates = parse_scan_rows(rows or [], cleaned)
    logger.debug("Text scan for %s produced %d candidates.", cleaned, len(candidates))
    return candidates


def match_text_variations(searchable: Iterable[str], variations: Sequence[str]) -> tuple[str, MatchType] | None:
    for text in searchable:
        if not text:
            continue
        lowered = text.lower()
        for target in variations:
            target_lower = target.lower()
            if not target_lower:
                continue
            if target_lower in lowered or lowered in target_lower:
                return target, "exact" if text == target else "partial"
    return None


def parse_scan_rows(rows: Iterable[Mapping[str, Any]], variations: Sequence[str]) -> list[ScoredCandidate]:
    candidates: list[ScoredCandidate] = []
    for row in rows:
        texts = row.get("texts") or {}
        searchable = [str(texts.get(key) or "").strip() for key in _SEARCHABLE_KEYS]
        matched = match_text_variations(searchable, variations)
        if matched is None:
            continue
        matched_text, match_type = matched

        tag = str(row.get("tag") or "").lower()
        attributes = {str(key): str(value) for key, value in (row.get("attributes") or {}).items()}
        box = row.get("box") or {}
        candidates.append(
            ScoredCandidate(
                tag=tag,
                id=row.get("id") or None,
                class_name=row.get("className") or None,
                text=str(texts.get("textContent") or "").strip(),
                value=str(texts.get("value") or ""),
                attributes=attributes,
                box=BoundingBox(
                    x=float(box.get("x") or 0.0),
                    y=float(box.get("y") or 0.0),
                    width=float(box.get("width") or 0.0),
                    height=float(box.get("height") or 0.0),
                ),
                is_visible=bool(row.get("isVisible")),
                is_interactive=(
                    tag in INTERACTIVE_TAGS or bool(row.get("hasClickHandler")) or "role" in attributes
                ),
                has_test_id=has_test_attribute(attributes),
                matched_text=matched_text,
                match_type=match_type,
                scan_index=len(candidates),
            )
        )
    return candidates


def score_candidate(candidate: ScoredCandidate, weights: ScoringWeights | None = None) -> float:
    weights = weights or ScoringWeights()
    box = candidate.box

    score = 0.0
    if candidate.is_visible:
        score += weights.visible
    if candidate.is_interactive:
        score += weights.interactive
    if candidate.has_test_id:
        score += weights.test_attribute
    if candidate.id:
        score += weights.has_id
    if candidate.match_type == "exact":
        score += weights.exact_match
    if box.width > weights.min_width and box.height > weights.min_height:
        score += weights.reasonable_size
    # Stacks with the interactive bonus.
    if candidate.tag in CLICKABLE_TAGS:
        score += weights.clickable_tag
    if box.width > weights.max_width or box.height > weights.max_height:
        score -= weights.oversized_penalty

    candidate.score = score
    return score


def rank_candidates(
    candidates: Iterable[ScoredCandidate],
    weights: ScoringWeights | None = None,
) -> list[ScoredCandidate]:
    scored = list(candidates)
    for candidate in scored:
        score_candidate(candidate, weights)
    scored.sort(key=lambda item: -item.score)
    for index, candidate in enumerate(scored[:3], start=1):
        logger.debug(
            "Top %d: <%s id=%s> score=%.1f visible=%s interactive=%s test_id=%s",
            index,
            candidate.tag,
            candidate.id,
            candidate.score,
            candidate.is_visible,
            candidate.is_interactive,
            candidate.has_test_id,
        )
    return scored


def build_text_strategies(ranked: Sequence[ScoredCandidate], max_strategies: int = 5) -> list[Strategy]:
    """Turn the best scanned candidate into a short list of strategies."""
    if not ranked:
        return []

    best = ranked[0]
    strategies: list[Strategy] = []
    seen: set[str] = set()

    def add(kind: StrategyKind, selector: str, description: str, reliability: float) -> None:
        if not selector or selector in seen:
            return
        seen.add(selector)
        strategies.append(
            Strategy(
                kind=kind,
                selector=selector,
                priority=len(strategies) + 1,
                description=description,
                reliability=reliability,
            )
        )

    text = best.text.strip()
    if text and len(text) < MAX_TEXT_STRATEGY_LENGTH:
        add("text", exact_text_selector(text), f'Exact text match: "{text}"', 0.95)

    test_id = best.attributes.get("data-testid")
    if test_id:
        add("data-testid", attribute_selector("data-testid", test_id), f"Test ID: {test_id}", 0.9)
    data_test = best.attributes.get("data-test")
    if data_test:
        add("css", attribute_selector("data-test", data_test), f"Data-test: {data_test}", 0.9)
    if best.id:
        add("id", id_selector(best.id), f"ID: {best.id}", 0.9)

    if best.tag == "input":
        input_type = best.attributes.get("type")
        name = best.attributes.get("name")
        if input_type and name:
            selector = attribute_selector("type", input_type, tag="input") + attribute_selector("name", name)
            add("css", selector, f"Input type+name: {input_type}, {name}", 0.85)
        if best.value:
            add("css", attribute_selector("value", best.value, tag="input"), f"Input value: {best.value}", 0.8)
        placeholder = best.attributes.get("placeholder")
        if placeholder:
            add(
                "css",
                attribute_selector("placeholder", placeholder, tag="input"),
                f"Placeholder: {placeholder}",
                0.75,
            )

    classes = [item for item in (best.class_name or "").split() if item]
    if classes and len(classes) <= 2:
        selector = "".join(class_selector(item) for item in classes)
        add("css", selector, f"Classes: {', '.join(classes)}", 0.6)

    if len(strategies) < MIN_STRATEGIES_BEFORE_RUNNERS_UP:
        for runner_up in ranked[1:RUNNER_UP_LIMIT]:
            runner_test_id = runner_up.attributes.get("data-testid")
            if runner_test_id:
                add(
                    "data-testid",
                    attribute_selector("data-testid", runner_test_id),
                    f"Fallback Test ID: {runner_test_id}",
                    0.9,
                )
            if runner_up.id:
                add("id", id_selector(runner_up.id), f"Fallback ID: {runner_up.id}", 0.85)

    limited = strategies[: max(0, max_strategies)]
    logger.debug("Built %d text strategies, keeping %d.", len(strategies), len(limited))
    return limited
