#!/usr/bin/env python3
"""Trace event classification: raw Chrome trace events -> typed records.

Every downstream tool works on the narrowed records defined here, never on
raw trace dicts. Classification is a total function: foreign events are
ignored, malformed ones are dropped and counted, nothing raises.

Recognized events:
- Animation (ph "b")           -> AnimationBegin
- Animation (ph "n")           -> CompositeStatus (current trace format)
- CompositeAnimation (any ph)  -> CompositeStatus (legacy trace format)
- LayoutShift                  -> LayoutShift

Usage (import):
    from trace_tools.schema import classify_events
    stream = classify_events(trace["traceEvents"])
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from trace_tools.errors import MissingTraceError

logger = logging.getLogger(__name__)

ANIMATION_EVENT = "Animation"
LAYOUT_SHIFT_EVENT = "LayoutShift"

# Older traces report the composite outcome as a separate event name;
# newer ones use an "n" phase on the Animation event itself.
LEGACY_STATUS_EVENT_NAMES = {"CompositeAnimation"}

BEGIN_PHASES = {"b"}
STATUS_PHASES = {"n"}

# (x, y, width, height), as emitted in impacted_nodes old_rect/new_rect.
Rect = Tuple[float, float, float, float]
ElementId = Union[int, str]


# ──────────────────────────────────────────────────
# Typed records
# ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ImpactedRegion:
    element_id: ElementId
    previous_rect: Rect
    new_rect: Rect


@dataclass(frozen=True)
class LayoutShiftSample:
    """One layout shift: its score and the regions that moved."""

    total_score: float
    impacted_regions: Tuple[ImpactedRegion, ...]


@dataclass(frozen=True)
class AnimationBegin:
    element_id: ElementId
    correlation_key: Optional[str] = None
    animation_id: Optional[str] = None
    name: Optional[str] = None
    timestamp: float = 0.0

    kind = "animation"
    phase = "begin"


@dataclass(frozen=True)
class CompositeStatus:
    """Terminal report of whether an animation ran on the compositor.

    failure_code is the compositeFailed bitmask; 0 means it composited.
    """

    correlation_key: str
    failure_code: int
    unsupported_properties: Tuple[str, ...] = ()
    timestamp: float = 0.0

    kind = "composite-status"
    phase = "status"


@dataclass(frozen=True)
class LayoutShift:
    sample: LayoutShiftSample
    had_recent_input: bool = False
    timestamp: float = 0.0

    kind = "layout-shift"
    phase = "instant"
    correlation_key = None


TraceEvent = Union[AnimationBegin, CompositeStatus, LayoutShift]


@dataclass
class ClassifiedStream:
    """Classified events in stream order plus drop counters."""

    events: List[TraceEvent] = field(default_factory=list)
    ignored: int = 0
    malformed: int = 0

    def of_type(self, event_type: type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]

    def to_dict(self) -> Dict[str, int]:
        return {
            "classified_events": len(self.events),
            "ignored_events": self.ignored,
            "malformed_events": self.malformed,
        }


# ──────────────────────────────────────────────────
# Field coercion helpers
# ──────────────────────────────────────────────────


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int beyond float range
        return False


def _to_timestamp(value: Any) -> float:
    return float(value) if _is_number(value) else 0.0


def to_element_id(value: Any) -> Optional[ElementId]:
    """Element ids are DOM node ids; numeric strings are coerced to int.

    Node id 0 is never a real DOM node and reads as absent.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value or None
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value) or None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isascii() and text.isdigit():
            return int(text) or None
        return text
    return None


def _to_rect(value: Any) -> Optional[Rect]:
    if not isinstance(value, (list, tuple)) or len(value) != 4:
        return None
    if not all(_is_number(v) for v in value):
        return None
    x, y, width, height = (float(v) for v in value)
    return (x, y, width, height)


def _to_failure_code(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not _is_number(value):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    code = int(value)
    return code if code >= 0 else None


def _correlation_key(raw: Dict[str, Any]) -> Optional[str]:
    """Pairing key: id2.local, then id2.global, then the flat id field."""
    id2 = raw.get("id2")
    if isinstance(id2, dict):
        for scope in ("local", "global"):
            key = id2.get(scope)
            if key not in (None, ""):
                return str(key)
    flat = raw.get("id")
    if flat not in (None, ""):
        return str(flat)
    return None


def _event_data(raw: Dict[str, Any]) -> Dict[str, Any]:
    args = raw.get("args")
    if not isinstance(args, dict):
        return {}
    data = args.get("data")
    return data if isinstance(data, dict) else {}


# ──────────────────────────────────────────────────
# Per-kind parsers
# ──────────────────────────────────────────────────


def _parse_animation_begin(raw: Dict[str, Any]) -> Optional[AnimationBegin]:
    data = _event_data(raw)
    element_id = to_element_id(data.get("nodeId"))
    if element_id is None:
        return None
    animation_id = data.get("id")
    name = data.get("name")
    return AnimationBegin(
        element_id=element_id,
        correlation_key=_correlation_key(raw),
        animation_id=str(animation_id) if animation_id not in (None, "") else None,
        name=name if isinstance(name, str) and name else None,
        timestamp=_to_timestamp(raw.get("ts")),
    )


def _parse_composite_status(raw: Dict[str, Any]) -> Optional[CompositeStatus]:
    key = _correlation_key(raw)
    if key is None:
        return None
    data = _event_data(raw)
    failure_code = _to_failure_code(data.get("compositeFailed"))
    if failure_code is None:
        return None
    props = data.get("unsupportedProperties")
    unsupported = tuple(str(p) for p in props if isinstance(p, str) and p) if isinstance(props, list) else ()
    return CompositeStatus(
        correlation_key=key,
        failure_code=failure_code,
        unsupported_properties=unsupported,
        timestamp=_to_timestamp(raw.get("ts")),
    )


def _parse_layout_shift(raw: Dict[str, Any]) -> Optional[LayoutShift]:
    data = _event_data(raw)
    score = data.get("score")
    if not _is_number(score) or score < 0:
        return None
    nodes = data.get("impacted_nodes")
    if not isinstance(nodes, list):
        return None

    regions: List[ImpactedRegion] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        element_id = to_element_id(node.get("node_id"))
        old_rect = _to_rect(node.get("old_rect"))
        new_rect = _to_rect(node.get("new_rect"))
        if element_id is None or old_rect is None or new_rect is None:
            continue
        regions.append(ImpactedRegion(element_id, old_rect, new_rect))

    if not regions:
        return None
    return LayoutShift(
        sample=LayoutShiftSample(total_score=float(score), impacted_regions=tuple(regions)),
        had_recent_input=data.get("had_recent_input") is True,
        timestamp=_to_timestamp(raw.get("ts")),
    )


def _classify(raw: Any) -> Tuple[Optional[TraceEvent], str]:
    """Return (record, outcome) where outcome is classified|ignored|malformed."""
    if not isinstance(raw, dict):
        return None, "ignored"

    name = raw.get("name")
    phase = raw.get("ph")
    parsed: Optional[TraceEvent]

    if name == ANIMATION_EVENT and phase in BEGIN_PHASES:
        parsed = _parse_animation_begin(raw)
    elif name == ANIMATION_EVENT and phase in STATUS_PHASES:
        # Other "n" instants on Animation (e.g. state updates) carry no outcome.
        if "compositeFailed" not in _event_data(raw):
            return None, "ignored"
        parsed = _parse_composite_status(raw)
    elif name in LEGACY_STATUS_EVENT_NAMES:
        parsed = _parse_composite_status(raw)
    elif name == LAYOUT_SHIFT_EVENT:
        parsed = _parse_layout_shift(raw)
    else:
        return None, "ignored"

    if parsed is None:
        return None, "malformed"
    return parsed, "classified"


def classify_event(raw: Any) -> Optional[TraceEvent]:
    """Classify one raw event. Returns None for ignored or malformed input."""
    return _classify(raw)[0]


def classify_events(events: Iterable[Any]) -> ClassifiedStream:
    """Classify a raw event sequence, preserving stream order."""
    stream = ClassifiedStream()
    for index, raw in enumerate(events):
        parsed, outcome = _classify(raw)
        if parsed is not None:
            stream.events.append(parsed)
        elif outcome == "malformed":
            stream.malformed += 1
            logger.debug("dropped malformed %s event at index %d", raw.get("name"), index)
        else:
            stream.ignored += 1
    return stream


def trace_events(trace: Any) -> List[Any]:
    """Accept a bare event list or a {traceEvents: [...]} trace dict.

    Raises MissingTraceError when there is no event sequence at all.
    """
    if trace is None:
        raise MissingTraceError("Trace is missing!")
    if isinstance(trace, dict):
        events = trace.get("traceEvents")
        if not isinstance(events, list):
            raise MissingTraceError("Trace has no traceEvents list")
        return events
    if isinstance(trace, (str, bytes)):
        raise MissingTraceError("Trace must be an event sequence, not a string")
    return list(trace)
