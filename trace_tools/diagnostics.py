#!/usr/bin/env python3
"""Diagnostic assembly: resolved animation pairs -> grouped diagnostic records.

This is the last stage of the engine. It takes the resolved begin/status
pairs from pairing.py, decodes each status's failure code (failure_codes.py)
and groups the animated elements that failed for the same reasons into one
DiagnosticRecord.

Group key, first match wins:
1. caller-supplied logical name for the animation id (animation_names)
2. the animation's own name from the begin event
3. the decoded reasons, sorted and joined with ", "

Element ids stay opaque here; enrichment.py resolves them to DOM descriptors.

run_analysis() is the one-call engine over a whole trace:
    classify -> {pair, attribute layout shifts, dedupe animated elements}
             -> decode -> assemble

Usage (import):
    from trace_tools.diagnostics import run_analysis
    result = run_analysis(trace)
    result.animation_diagnostics   # [DiagnosticRecord, ...]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from trace_tools.animated_elements import dedupe_element_ids, get_animated_elements
from trace_tools.config import AnalysisConfig
from trace_tools.failure_codes import (
    FailurePolicy,
    FailureReason,
    decode_failure_code,
    load_failure_catalog,
)
from trace_tools.layout_shift import (
    ElementContribution,
    get_top_layout_shift_elements,
    layout_shift_samples,
)
from trace_tools.pairing import CorrelationPair, pair_events
from trace_tools.schema import ElementId, classify_events, trace_events

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticRecord:
    group_key: str
    failure_reasons: List[str]
    element_ids: List[ElementId] = field(default_factory=list)
    unsupported_properties: List[str] = field(default_factory=list)
    has_additional_causes: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_key": self.group_key,
            "failure_reasons": list(self.failure_reasons),
            "element_ids": list(self.element_ids),
            "unsupported_properties": list(self.unsupported_properties),
            "has_additional_causes": self.has_additional_causes,
        }


@dataclass
class AnalysisResult:
    layout_shift_elements: List[ElementContribution] = field(default_factory=list)
    animation_diagnostics: List[DiagnosticRecord] = field(default_factory=list)
    animated_elements: List[Dict[str, Any]] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layout_shift_elements": [c.to_dict() for c in self.layout_shift_elements],
            "animation_diagnostics": [d.to_dict() for d in self.animation_diagnostics],
            "animated_elements": list(self.animated_elements),
            "stats": dict(self.stats),
        }


def reason_group_key(reasons: Iterable[str]) -> str:
    """Normalized grouping key for a reason set: sorted and comma-joined."""
    return ", ".join(sorted(set(reasons)))


def _group_key(
    pair: CorrelationPair,
    reasons: Sequence[str],
    animation_names: Optional[Mapping[str, str]],
) -> str:
    begin = pair.begin
    if animation_names and begin.animation_id is not None:
        name = animation_names.get(begin.animation_id)
        if name:
            return name
    if begin.name:
        return begin.name
    return reason_group_key(reasons)


def assemble_diagnostics(
    pairs: Iterable[CorrelationPair],
    policy: FailurePolicy = FailurePolicy.ACTIONABLE_ONLY,
    animation_names: Optional[Mapping[str, str]] = None,
    catalog: Optional[Sequence[FailureReason]] = None,
) -> List[DiagnosticRecord]:
    """Decode each resolved pair and group reportable ones into records.

    Pairs whose failure code is not reportable under the policy (composited
    fine, nothing actionable, or unexplained bits under actionable_only)
    produce nothing.
    """
    catalog = load_failure_catalog() if catalog is None else catalog
    records: Dict[Tuple[str, Tuple[str, ...]], DiagnosticRecord] = {}

    for pair in pairs:
        if not pair.is_complete:
            continue
        decoded = decode_failure_code(pair.status.failure_code, policy, catalog)
        if not decoded.reportable:
            continue

        group_key = _group_key(pair, decoded.reasons, animation_names)
        reason_set = tuple(sorted(decoded.reasons))
        record = records.get((group_key, reason_set))
        if record is None:
            record = DiagnosticRecord(group_key=group_key, failure_reasons=list(decoded.reasons))
            records[(group_key, reason_set)] = record

        record.element_ids = dedupe_element_ids(record.element_ids + [pair.begin.element_id])
        record.unsupported_properties = list(dict.fromkeys(
            record.unsupported_properties + list(pair.status.unsupported_properties)
        ))
        record.has_additional_causes = record.has_additional_causes or decoded.has_additional_causes

    return list(records.values())


def run_analysis(
    trace: Any,
    config: Optional[AnalysisConfig] = None,
    animation_names: Optional[Mapping[str, str]] = None,
) -> AnalysisResult:
    """Run the full engine over one trace.

    Raises MissingTraceError when there is no trace at all. An empty event
    list is a valid trace with nothing to report.
    """
    config = config or AnalysisConfig()
    events = trace_events(trace)

    stream = classify_events(events)
    pairing = pair_events(stream.events)
    samples = layout_shift_samples(stream.events, config.exclude_recent_input)

    result = AnalysisResult(
        layout_shift_elements=get_top_layout_shift_elements(samples, limit=config.top_n),
        animation_diagnostics=assemble_diagnostics(
            pairing.pairs, config.failure_policy, animation_names
        ),
        animated_elements=get_animated_elements(stream.events),
        stats={**stream.to_dict(), **pairing.to_dict(), "layout_shift_samples": len(samples)},
    )

    logger.info(
        "analyzed %d events: %d shift element(s), %d animation diagnostic(s), %d malformed",
        len(events),
        len(result.layout_shift_elements),
        len(result.animation_diagnostics),
        stream.malformed,
    )
    return result
