#!/usr/bin/env python3
"""Formatter: turns analysis output into audit-style report products.

This is the final stage of the pipeline. It takes enriched diagnostics (from
enrichment.py) and layout-shift contributions (from layout_shift.py) and
produces the table payloads a report layer renders:

1. Non-composited animations audit: score, display value, one table row per
   diagnostic with the affected nodes as sub-items.
2. Layout-shift elements table: one row per ranked element with its share
   of the shift score.

Scoring is informative: 1 when nothing was found, 0 otherwise. Strings are
plain English; localization belongs to the report layer.

Usage (import):
    from trace_tools.formatter import build_animation_audit
    product = build_animation_audit(enriched_diagnostics)
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from trace_tools.enrichment import DescriptorResolver, resolve_descriptors
from trace_tools.layout_shift import ElementContribution

ANIMATION_AUDIT_ID = "non-composited-animations"
ANIMATION_AUDIT_TITLE = "Avoid non-composited animations"
ANIMATION_AUDIT_DESCRIPTION = (
    "Animations which are not composited can be janky and contribute to CLS."
)

LAYOUT_SHIFT_AUDIT_ID = "layout-shift-elements"
LAYOUT_SHIFT_AUDIT_TITLE = "Avoid large layout shifts"


def animation_display_value(count: int) -> Optional[str]:
    """'1 animation found' / 'N animations found'; None when nothing was found."""
    if count <= 0:
        return None
    if count == 1:
        return "1 animation found"
    return f"{count} animations found"


def _animation_row(diagnostic: Mapping[str, Any]) -> Dict[str, Any]:
    reasons = list(diagnostic.get("failure_reasons", []))
    props = diagnostic.get("unsupported_properties") or []
    if props:
        reasons = [
            f"{r}: {', '.join(props)}" if r == "Unsupported CSS Property" else r
            for r in reasons
        ]
    return {
        "animation": diagnostic.get("group_key", ""),
        "failureString": ", ".join(reasons),
        "subItems": {
            "type": "subitems",
            "items": [{"node": node} for node in diagnostic.get("nodes", [])],
        },
    }


def build_animation_audit(enriched_diagnostics: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Build the non-composited animations audit product."""
    items = [_animation_row(d) for d in enriched_diagnostics]

    headings = [
        {
            "key": "animation",
            "itemType": "text",
            "subItemsHeading": {"key": "node", "itemType": "node"},
            "text": "Name",
        },
        {"key": "failureString", "itemType": "text", "text": "Failure reason"},
    ]

    product: Dict[str, Any] = {
        "id": ANIMATION_AUDIT_ID,
        "title": ANIMATION_AUDIT_TITLE,
        "description": ANIMATION_AUDIT_DESCRIPTION,
        "score": 0 if items else 1,
        "notApplicable": not items,
        "details": {"type": "table", "headings": headings, "items": items},
    }
    display_value = animation_display_value(len(items))
    if display_value is not None:
        product["displayValue"] = display_value
    return product


def build_layout_shift_table(
    contributions: Iterable[ElementContribution],
    resolve: Optional[DescriptorResolver] = None,
) -> Dict[str, Any]:
    """Build the layout-shift elements table.

    Without a resolver, or for elements it cannot resolve, the node cell
    carries only the element id.
    """
    contributions = list(contributions)
    descriptors = (
        resolve_descriptors([c.element_id for c in contributions], resolve)
        if resolve is not None
        else {}
    )

    items: List[Dict[str, Any]] = []
    for c in contributions:
        descriptor = descriptors.get(c.element_id)
        node = descriptor.to_node() if descriptor else {"type": "node", "nodeId": c.element_id}
        items.append({"node": node, "score": c.cumulative_score})

    return {
        "id": LAYOUT_SHIFT_AUDIT_ID,
        "title": LAYOUT_SHIFT_AUDIT_TITLE,
        "details": {
            "type": "table",
            "headings": [
                {"key": "node", "itemType": "node", "text": "Element"},
                {"key": "score", "itemType": "numeric", "granularity": 0.001, "text": "CLS Contribution"},
            ],
            "items": items,
        },
    }
