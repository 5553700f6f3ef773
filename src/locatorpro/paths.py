from __future__ import annotations

from typing import Sequence

from .models import AncestorStep
from .selector_text import escape_css_identifier


def build_position_path(ancestry: Sequence[AncestorStep]) -> str:
    """Hierarchical XPath anchored on tag names, e.g. ``//html/body/ul/li[2]``.

    ``ancestry`` is ordered from the element up to the root.
    """
    if not ancestry:
        return ""
    parts: list[str] = []
    for step in ancestry:
        tag = step.tag.lower()
        parts.insert(0, f"{tag}[{step.type_index}]" if step.type_index > 1 else tag)
    return "//" + "/".join(parts)


def build_specificity_path(ancestry: Sequence[AncestorStep]) -> str:
    """CSS path that climbs until the first ancestor carrying an id."""
    if not ancestry:
        return ""
    parts: list[str] = []
    for step in ancestry:
        tag = step.tag.lower()
        if step.id:
            parts.insert(0, f"{tag}#{escape_css_identifier(step.id)}")
            break
        if step.type_index > 1:
            parts.insert(0, f"{tag}:nth-child({step.child_index})")
        else:
            parts.insert(0, tag)
    return " > ".join(parts)
