from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Sequence

from .errors import NoMatchFound
from .models import ContainerInfo, RelatedCandidate, RelatedTextWeights, Strategy, StrategyKind
from .selector_rules import SKIPPED_SCAN_TAGS
from .selector_text import (
    attribute_selector,
    class_selector,
    has_text_selector,
    id_selector,
    xpath_literal,
)

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("locatorpro.scan")

DEFAULT_CONTAINER_TAGS = ("div", "section", "article", "li", "tr")
DEFAULT_MAX_ANCESTOR_LEVELS = 5

_RELATED_SCAN_SCRIPT = """
({ targetText, maxLevels, skipped }) => {
  const rows = [];
  for (const el of Array.from(document.querySelectorAll('*'))) {
    const tag = el.tagName.toLowerCase();
    if (skipped.includes(tag)) continue;

    const text = (el.textContent || '').trim();
    const value = typeof el.value === 'string' ? el.value : '';
    const ariaLabel = el.getAttribute('aria-label') || '';
    if (!text.includes(targetText) && !value.includes(targetText) && !ariaLabel.includes(targetText)) {
      continue;
    }

    const rect = el.getBoundingClientRect();
    const isVisible = rect.width > 0 && rect.height > 0;
    const isInteractive = ['button', 'input', 'a', 'select'].includes(tag)
      || el.hasAttribute('onclick') || el.hasAttribute('role');
    if (!isVisible || !isInteractive) continue;

    const attrs = {};
    for (const attr of Array.from(el.attributes || [])) {
      attrs[attr.name] = attr.value;
    }
    const ancestors = [];
    let current = el.parentElement;
    let depth = 1;
    while (current && depth <= maxLevels) {
      ancestors.push({
        tag: current.tagName.toLowerCase(),
        className: typeof current.className === 'string' ? current.className : '',
        text: (current.textContent || '').trim(),
        depth,
      });
      current = current.parentElement;
      depth += 1;
    }
    rows.push({
      tag,
      id: el.id || null,
      className: typeof el.className === 'string' ? el.className : null,
      text,
      value,
      attributes: attrs,
      isVisible,
      isInteractive,
      ancestors,
    });
  }
  return rows;
}
"""


def scan_related_candidates(
    page: Page,
    target_text: str,
    related_text: str,
    *,
    container_tags: Sequence[str] = DEFAULT_CONTAINER_TAGS,
    max_ancestor_levels: int = DEFAULT_MAX_ANCESTOR_LEVELS,
    weights: RelatedTextWeights | None = None,
) -> list[RelatedCandidate]:
    """Find interactive targets whose nearby container mentions ``related_text``.

    Returns candidates ranked best first. Raises NoMatchFound naming the
    stage that came up empty.
    """
    rows = page.evaluate(
        _RELATED_SCAN_SCRIPT,
        {
            "targetText": target_text,
            "maxLevels": max(1, int(max_ancestor_levels)),
            "skipped": sorted(SKIPPED_SCAN_TAGS),
        },
    )
    candidates = parse_related_rows(rows or [], target_text, related_text)
    if not candidates:
        raise NoMatchFound(f"No interactive element contains {target_text!r}.", stage="target-text")
    anchored = [
        candidate
        for candidate in candidates
        if attach_container(candidate, container_tags) is not None
    ]
    if not anchored:
        raise NoMatchFound(
            f"No container within {max_ancestor_levels} levels of {target_text!r} mentions {related_text!r}.",
            stage="related-text",
        )
    ranked = rank_related_candidates(anchored, weights)
    logger.debug(
        "Related scan for %r near %r: %d targets, %d anchored.",
        target_text,
        related_text,
        len(candidates),
        len(ranked),
    )
    return ranked


def parse_related_rows(
    rows: Iterable[Mapping[str, Any]],
    target_text: str,
    related_text: str,
) -> list[RelatedCandidate]:
    candidates: list[RelatedCandidate] = []
    for row in rows:
        ancestors = [
            ContainerInfo(
                tag=str(item.get("tag") or "").lower(),
                class_name=str(item.get("className") or "") or None,
                text=str(item.get("text") or ""),
                depth=int(item.get("depth") or 0),
            )
            for item in row.get("ancestors") or []
            if isinstance(item, Mapping)
        ]
        candidates.append(
            RelatedCandidate(
                tag=str(row.get("tag") or "").lower(),
                id=row.get("id") or None,
                class_name=row.get("className") or None,
                text=str(row.get("text") or ""),
                value=str(row.get("value") or ""),
                target_text=target_text,
                related_text=related_text,
                attributes={str(key): str(value) for key, value in (row.get("attributes") or {}).items()},
                is_visible=bool(row.get("isVisible")),
                is_interactive=bool(row.get("isInteractive")),
                ancestors=ancestors,
                scan_index=len(candidates),
            )
        )
    return candidates


def attach_container(candidate: RelatedCandidate, container_tags: Sequence[str]) -> ContainerInfo | None:
    allowed = {tag.lower() for tag in container_tags}
    for ancestor in sorted(candidate.ancestors, key=lambda item: item.depth):
        if allowed and ancestor.tag not in allowed:
            continue
        if candidate.related_text in ancestor.text:
            candidate.container = ancestor
            return ancestor
    candidate.container = None
    return None


def specificity_score(container_text: str, related_text: str, weights: RelatedTextWeights | None = None) -> float:
    weights = weights or RelatedTextWeights()
    if related_text and container_text.count(related_text) == 1:
        return weights.unique_anchor
    if len(container_text) < weights.short_limit:
        return weights.short_container
    if len(container_text) < weights.medium_limit:
        return weights.medium_container
    return weights.long_container


def score_related_candidate(candidate: RelatedCandidate, weights: RelatedTextWeights | None = None) -> float:
    weights = weights or RelatedTextWeights()
    container_text = candidate.container.text if candidate.container else ""
    candidate.specificity = specificity_score(container_text, candidate.related_text, weights)
    score = candidate.specificity
    if candidate.is_visible:
        score += weights.visible
    if candidate.is_interactive:
        score += weights.interactive
    candidate.score = score
    return score


def rank_related_candidates(
    candidates: Iterable[RelatedCandidate],
    weights: RelatedTextWeights | None = None,
) -> list[RelatedCandidate]:
    scored = list(candidates)
    for candidate in scored:
        score_related_candidate(candidate, weights)

    def sort_key(item: RelatedCandidate) -> tuple[float, int, int, int]:
        container = item.container
        depth = container.depth if container else 0
        length = len(container.text) if container else 0
        return (-item.score, depth, length, item.scan_index)

    scored.sort(key=sort_key)
    return scored


def innermost_scope(container: str, target: str) -> str:
    """CSS for ``target`` inside the innermost ``container`` that holds it.

    Outer wrappers also contain the anchor text, so a container qualifies only
    when no nested container of the same form holds the target as well.
    """
    holder = f"{container}:has({target})"
    return f"{holder}:not(:has({holder})) {target}"


def innermost_xpath(axis: str, related_text: str, target: str) -> str:
    holder = f"{axis}[contains(., {xpath_literal(related_text)})][.//{target}]"
    return f"//{holder}[not(.//{holder})]//{target}"


def build_related_text_strategies(candidate: RelatedCandidate) -> list[Strategy]:
    """Strategies for a related-text winner, most collision-proof first."""
    strategies: list[Strategy] = []
    related = candidate.related_text
    container = candidate.container
    container_tag = container.tag if container else ""
    scope = has_text_selector(related, tag=container_tag)
    axis = container_tag or "*"
    tag = candidate.tag
    attrs = candidate.attributes

    def add(kind: StrategyKind, selector: str, priority: int, reliability: float, description: str) -> None:
        strategies.append(
            Strategy(
                kind=kind,
                selector=selector,
                priority=priority,
                description=description,
                reliability=reliability,
            )
        )

    def scoped(target: str) -> str:
        return innermost_scope(scope, target)

    if candidate.id:
        add("id", id_selector(candidate.id), 1, 0.98, f"Direct ID: {candidate.id}")
    if attrs.get("data-test"):
        add(
            "css",
            scoped(attribute_selector("data-test", attrs["data-test"])),
            2,
            0.95,
            f"Data-test {attrs['data-test']} in container with {related}",
        )
    if attrs.get("name"):
        add(
            "css",
            scoped(attribute_selector("name", attrs["name"])),
            3,
            0.9,
            f"Name {attrs['name']} in container with {related}",
        )
    if attrs.get("role"):
        add(
            "css",
            scoped(attribute_selector("role", attrs["role"])),
            4,
            0.85,
            f"Role {attrs['role']} in container with {related}",
        )
    if tag == "a" and attrs.get("href"):
        add(
            "css",
            scoped(attribute_selector("href", attrs["href"], tag="a")),
            5,
            0.9,
            f"Link href {attrs['href']} in container with {related}",
        )
    if tag == "img" and attrs.get("alt"):
        add(
            "css",
            scoped(attribute_selector("alt", attrs["alt"], tag="img")),
            6,
            0.85,
            f"Image alt {attrs['alt']} in container with {related}",
        )
    if attrs.get("title"):
        add(
            "css",
            scoped(attribute_selector("title", attrs["title"])),
            7,
            0.8,
            f"Title {attrs['title']} in container with {related}",
        )
    if tag == "input" and attrs.get("placeholder"):
        add(
            "css",
            scoped(attribute_selector("placeholder", attrs["placeholder"], tag="input")),
            8,
            0.8,
            f"Input placeholder {attrs['placeholder']} in container with {related}",
        )
    if tag == "input" and attrs.get("type"):
        add(
            "css",
            scoped(attribute_selector("type", attrs["type"], tag="input")),
            9,
            0.75,
            f"Input type {attrs['type']} in container with {related}",
        )
    if tag == "input" and candidate.value:
        add(
            "css",
            scoped(attribute_selector("value", candidate.value, tag="input")),
            10,
            0.9,
            f"Row input value {candidate.value} with {related}",
        )
        add(
            "xpath",
            innermost_xpath(axis, related, f"input[@value={xpath_literal(candidate.value)}]"),
            11,
            0.85,
            f"XPath input value {candidate.value} with {related}",
        )
    anchor_text = candidate.text.strip()
    if tag == "a" and anchor_text:
        add(
            "css",
            scoped(has_text_selector(anchor_text, tag="a")),
            12,
            0.85,
            f"Anchor text {anchor_text} in container with {related}",
        )
        add(
            "xpath",
            innermost_xpath(axis, related, f"a[contains(text(), {xpath_literal(anchor_text)})]"),
            13,
            0.8,
            f"XPath anchor {anchor_text} in container with {related}",
        )
    if container is not None:
        container_classes = (container.class_name or "").split()
        if container_classes:
            container_scope = class_selector(container_classes[0]) + has_text_selector(related)
            description = f"Container .{container_classes[0]} with both texts"
        else:
            container_scope = scope
            description = f"Container <{container_tag}> with both texts"
        add(
            "css",
            innermost_scope(container_scope, has_text_selector(candidate.target_text, tag=tag)),
            14,
            0.8,
            description,
        )

    for strategy in strategies[:3]:
        logger.debug(
            "Related strategy [%s] %s (priority %d, reliability %.2f)",
            strategy.kind,
            strategy.selector,
            strategy.priority,
            strategy.reliability or 0.0,
        )
    return strategies
