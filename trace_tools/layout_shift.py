#!/usr/bin/env python3
"""Layout-shift attribution: which elements caused the most visual instability.

Each LayoutShift event carries one score for the whole shift plus the list of
elements (impacted regions) that moved. This tool splits every shift's score
across its regions and accumulates the shares per element, then ranks the
elements by cumulative score.

Splitting rule:
    area_of_impact(region) = area(old) + area(new) - area(old ∩ new)
    share(region)          = area_of_impact(region) / sum(area_of_impact in shift)
    contribution(region)   = share(region) * shift score

That is the area of the union of the before/after rects, so an element that
moved far away impacts more pixels than one that grew in place. If every
region in a shift has zero area, the score is split equally.

The shares in one shift sum to 1, so the sum of all per-element scores equals
the sum of all shift scores (score conservation).

Usage (CLI):
    python -m trace_tools.layout_shift --input trace.json --top-n 5

Usage (import):
    from trace_tools.layout_shift import get_top_layout_shift_elements
    top = get_top_layout_shift_elements(samples)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

from trace_tools.errors import MissingTraceError
from trace_tools.schema import (
    ElementId,
    LayoutShift,
    LayoutShiftSample,
    Rect,
    TraceEvent,
    classify_events,
    trace_events,
)

logger = logging.getLogger(__name__)

# Number of elements reported by default.
DEFAULT_TOP_N = 5


@dataclass
class ElementContribution:
    element_id: ElementId
    cumulative_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"node_id": self.element_id, "score": self.cumulative_score}


# ──────────────────────────────────────────────────
# Rect geometry
# ──────────────────────────────────────────────────


def rect_area(rect: Rect) -> float:
    _, _, width, height = rect
    return max(0.0, width) * max(0.0, height)


def rect_overlap_area(a: Rect, b: Rect) -> float:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    overlap_w = min(ax + aw, bx + bw) - max(ax, bx)
    overlap_h = min(ay + ah, by + bh) - max(ay, by)
    if overlap_w <= 0 or overlap_h <= 0:
        return 0.0
    return overlap_w * overlap_h


def area_of_impact(previous_rect: Rect, new_rect: Rect) -> float:
    """Pixels touched by a region across a shift (union of before and after)."""
    return (
        rect_area(previous_rect)
        + rect_area(new_rect)
        - rect_overlap_area(previous_rect, new_rect)
    )


# ──────────────────────────────────────────────────
# Attribution
# ──────────────────────────────────────────────────


def split_sample_score(sample: LayoutShiftSample) -> List[tuple]:
    """Return [(element_id, score_share)] for one shift, in region order."""
    regions = sample.impacted_regions
    if not regions:
        return []

    impacts = [area_of_impact(r.previous_rect, r.new_rect) for r in regions]
    total_impact = sum(impacts)

    if total_impact <= 0:
        equal_share = sample.total_score / len(regions)
        return [(r.element_id, equal_share) for r in regions]

    return [
        (r.element_id, (impact / total_impact) * sample.total_score)
        for r, impact in zip(regions, impacts)
    ]


def attribute_layout_shifts(samples: Iterable[LayoutShiftSample]) -> List[ElementContribution]:
    """Accumulate every element's share across all samples, in first-seen order."""
    contributions: Dict[ElementId, ElementContribution] = {}

    for sample in samples:
        if sample.total_score == 0:
            continue
        for element_id, share in split_sample_score(sample):
            entry = contributions.get(element_id)
            if entry is None:
                entry = ElementContribution(element_id=element_id)
                contributions[element_id] = entry
            entry.cumulative_score += share

    return list(contributions.values())


def get_top_layout_shift_elements(
    samples: Iterable[LayoutShiftSample],
    limit: int = DEFAULT_TOP_N,
) -> List[ElementContribution]:
    """Rank elements by cumulative shift score, highest first.

    Ties keep first-seen order (sorted() is stable over the first-seen list).
    """
    ranked = sorted(
        attribute_layout_shifts(samples),
        key=lambda c: c.cumulative_score,
        reverse=True,
    )
    return ranked[: max(0, limit)]


def layout_shift_samples(
    events: Iterable[TraceEvent],
    exclude_recent_input: bool = False,
) -> List[LayoutShiftSample]:
    """Pick the shift samples out of a classified event stream.

    Shifts flagged had_recent_input follow user interaction; they are kept
    unless exclude_recent_input is set.
    """
    samples = []
    for event in events:
        if not isinstance(event, LayoutShift):
            continue
        if exclude_recent_input and event.had_recent_input:
            continue
        samples.append(event.sample)
    return samples


# ──────────────────────────────────────────────────
# CLI interface
# ──────────────────────────────────────────────────


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for CLI usage."""
    parser = argparse.ArgumentParser(
        description="Rank elements by their cumulative layout-shift contribution"
    )
    parser.add_argument(
        "--input", required=True,
        help="Path to a trace JSON file ({traceEvents: [...]} or a bare event array)"
    )
    parser.add_argument(
        "--top-n", type=int, default=DEFAULT_TOP_N,
        help="Number of elements to report"
    )
    parser.add_argument(
        "--exclude-recent-input", action="store_true",
        help="Ignore shifts that followed user input"
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> None:
    """CLI entry point: load a trace, attribute shifts, print JSON to stdout."""
    args = parse_args(argv)

    input_path = Path(args.input)
    if not input_path.exists():
        print(json.dumps({"error": f"File not found: {args.input}"}))
        sys.exit(1)

    with open(input_path) as f:
        trace = json.load(f)
    try:
        events = trace_events(trace)
    except MissingTraceError as exc:
        print(json.dumps({"error": str(exc)}))
        sys.exit(1)

    stream = classify_events(events)
    samples = layout_shift_samples(stream.events, args.exclude_recent_input)
    top = get_top_layout_shift_elements(samples, limit=args.top_n)

    print(json.dumps({
        "layout_shift_elements": [c.to_dict() for c in top],
        "total_shift_score": sum(s.total_score for s in samples),
        "sample_count": len(samples),
    }, indent=2))


if __name__ == "__main__":
    main()
