#!/usr/bin/env python3
"""Animated element collection: which DOM nodes had at least one animation.

An element with several animations (or an animation restarted several times)
shows up in several begin fragments; it is reported once, at the position it
was first seen.

Usage (import):
    from trace_tools.animated_elements import get_animated_elements
    elements = get_animated_elements(stream.events)   # [{"node_id": 5}, ...]
"""

from __future__ import annotations

from typing import Any, Dict, Hashable, Iterable, List

from trace_tools.schema import AnimationBegin, TraceEvent


def dedupe_element_ids(element_ids: Iterable[Hashable]) -> List[Hashable]:
    """Drop repeated ids, keeping first-seen order."""
    return list(dict.fromkeys(element_ids))


def get_animated_elements(events: Iterable[TraceEvent]) -> List[Dict[str, Any]]:
    ids = (e.element_id for e in events if isinstance(e, AnimationBegin))
    return [{"node_id": element_id} for element_id in dedupe_element_ids(ids)]
