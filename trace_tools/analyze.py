#!/usr/bin/env python3
"""Trace analysis entry point: one trace in, all findings out as JSON.

Runs the full engine (diagnostics.run_analysis) over a Chrome trace file and
prints layout-shift attribution, non-composited animation diagnostics and the
animated element list. With --elements, element ids are enriched from a
pre-gathered element descriptor file; with --report, audit products are
added as well.

The elements file is a JSON list of gathered elements:

    [{"nodeId": 4, "devtoolsNodePath": "1,HTML,1,BODY,1,DIV",
      "selector": "body > div#animated-boi", "nodeLabel": "div",
      "snippet": "<div id=\"animated-boi\">",
      "animations": [{"id": "1", "name": "example"}]}]

Animation names listed there are used as diagnostic group keys.

Usage (CLI):
    trace-analyze --input trace.json
    python -m trace_tools.analyze --input trace.json --elements elements.json --report

Output: JSON to stdout. Logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping

from trace_tools.config import load_config
from trace_tools.diagnostics import run_analysis
from trace_tools.enrichment import (
    descriptors_from_trace_elements,
    enrich_diagnostics,
    enrich_elements,
)
from trace_tools.errors import TraceAnalysisError
from trace_tools.failure_codes import FailurePolicy
from trace_tools.formatter import build_animation_audit, build_layout_shift_table

logger = logging.getLogger("trace_tools")


def animation_names_from_elements(elements: List[Mapping[str, Any]]) -> Dict[str, str]:
    """Map animation id -> logical animation name from gathered elements."""
    names: Dict[str, str] = {}
    for element in elements:
        animations = element.get("animations") if isinstance(element, Mapping) else None
        if not isinstance(animations, list):
            continue
        for animation in animations:
            if not isinstance(animation, Mapping):
                continue
            animation_id = animation.get("id")
            name = animation.get("name")
            if animation_id not in (None, "") and isinstance(name, str) and name:
                names.setdefault(str(animation_id), name)
    return names


def _load_json(path_arg: str) -> Any:
    path = Path(path_arg)
    if not path.exists():
        print(json.dumps({"error": f"File not found: {path_arg}"}))
        sys.exit(1)
    with open(path) as f:
        return json.load(f)


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for CLI usage."""
    parser = argparse.ArgumentParser(
        description="Attribute layout shifts and diagnose non-composited animations in a trace"
    )
    parser.add_argument(
        "--input", required=True,
        help="Path to a trace JSON file ({traceEvents: [...]} or a bare event array)"
    )
    parser.add_argument(
        "--config", default=None,
        help="Path to a YAML config file"
    )
    parser.add_argument(
        "--elements", default=None,
        help="Path to a JSON list of gathered element descriptors (nodeId, selector, ...)"
    )
    parser.add_argument(
        "--top-n", type=int, default=None,
        help="Number of layout-shift elements to report"
    )
    parser.add_argument(
        "--failure-policy", default=None,
        choices=[p.value for p in FailurePolicy],
        help="How to treat failure bits with no actionable catalog entry"
    )
    parser.add_argument(
        "--exclude-recent-input", action="store_true", default=None,
        help="Ignore layout shifts that followed user input"
    )
    parser.add_argument(
        "--report", action="store_true",
        help="Include audit report products in the output"
    )
    parser.add_argument(
        "--log-level", default="WARNING",
        help="Log level for stderr output (DEBUG, INFO, WARNING, ...)"
    )
    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> None:
    """CLI entry point: load trace, run analysis, print JSON to stdout."""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config).with_overrides(
            top_n=args.top_n,
            failure_policy=args.failure_policy,
            exclude_recent_input=args.exclude_recent_input,
        )
    except TraceAnalysisError as exc:
        print(json.dumps({"error": str(exc)}))
        sys.exit(1)

    trace = _load_json(args.input)
    elements = _load_json(args.elements) if args.elements else None
    if elements is not None and not isinstance(elements, list):
        print(json.dumps({"error": f"Elements file must hold a JSON list: {args.elements}"}))
        sys.exit(1)

    animation_names = animation_names_from_elements(elements) if elements else None

    try:
        result = run_analysis(trace, config=config, animation_names=animation_names)
    except TraceAnalysisError as exc:
        print(json.dumps({"error": str(exc)}))
        sys.exit(1)

    output = result.to_dict()
    output["config"] = config.to_dict()

    if elements is not None:
        resolve = descriptors_from_trace_elements(elements)
        enriched = enrich_diagnostics(
            result.animation_diagnostics, resolve, config.max_enrichment_workers
        )
        output["animation_diagnostics_enriched"] = enriched
        output["animated_elements_enriched"] = enrich_elements(
            [e["node_id"] for e in result.animated_elements],
            resolve,
            config.max_enrichment_workers,
            keep_unresolved=True,
        )
    else:
        resolve = None
        enriched = [
            dict(d.to_dict(), nodes=[{"type": "node", "nodeId": i} for i in d.element_ids])
            for d in result.animation_diagnostics
        ]

    if args.report:
        output["report"] = {
            "non_composited_animations": build_animation_audit(enriched),
            "layout_shift_elements": build_layout_shift_table(
                result.layout_shift_elements, resolve
            ),
        }

    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
