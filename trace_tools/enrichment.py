#!/usr/bin/env python3
"""Element descriptor enrichment: opaque element ids -> DOM descriptors.

The engine only ever reports element ids. Turning an id into something a
person can act on (DOM path, CSS selector, label, HTML snippet) needs the
live page or a pre-gathered artifact, so it happens here, behind a resolver
callable supplied by the caller:

    resolve(element_id) -> ElementDescriptor | dict | None

None means "unresolved" (e.g. the node is gone from the page). A resolver
that raises is treated the same way. Unresolved elements are omitted (or
flagged with keep_unresolved=True); they never fail a whole record.

Resolution fans out over a bounded thread pool. Completion order does not
matter; results are joined back by element id in input order.

Usage (import):
    from trace_tools.enrichment import descriptors_from_trace_elements, enrich_diagnostics
    resolve = descriptors_from_trace_elements(artifact["TraceElements"])
    items = enrich_diagnostics(result.animation_diagnostics, resolve)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from trace_tools.animated_elements import dedupe_element_ids
from trace_tools.config import DEFAULT_MAX_ENRICHMENT_WORKERS
from trace_tools.schema import ElementId, to_element_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElementDescriptor:
    element_id: ElementId
    dom_path: str = ""
    selector: str = ""
    label: str = ""
    html_snippet: str = ""

    @classmethod
    def from_mapping(cls, element_id: ElementId, data: Mapping[str, Any]) -> ElementDescriptor:
        """Build from either snake_case keys or gathered TraceElements keys."""
        def pick(*keys: str) -> str:
            for key in keys:
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
            return ""

        return cls(
            element_id=element_id,
            dom_path=pick("dom_path", "devtoolsNodePath", "path"),
            selector=pick("selector"),
            label=pick("label", "nodeLabel"),
            html_snippet=pick("html_snippet", "snippet"),
        )

    def to_node(self) -> Dict[str, Any]:
        """Report node shape (type/path/selector/nodeLabel/snippet)."""
        return {
            "type": "node",
            "path": self.dom_path,
            "selector": self.selector,
            "nodeLabel": self.label,
            "snippet": self.html_snippet,
        }


ResolverResult = Union[ElementDescriptor, Mapping[str, Any], None]
DescriptorResolver = Callable[[ElementId], ResolverResult]


def descriptors_from_trace_elements(trace_elements: Iterable[Mapping[str, Any]]) -> DescriptorResolver:
    """Resolver backed by a pre-gathered list of element dicts keyed by nodeId."""
    by_id: Dict[ElementId, ElementDescriptor] = {}
    for element in trace_elements:
        if not isinstance(element, Mapping):
            continue
        element_id = to_element_id(element.get("nodeId"))
        if element_id is None or element_id in by_id:
            continue
        by_id[element_id] = ElementDescriptor.from_mapping(element_id, element)
    return by_id.get


def _resolve_one(resolve: DescriptorResolver, element_id: ElementId) -> Optional[ElementDescriptor]:
    try:
        found = resolve(element_id)
    except Exception as exc:
        logger.warning("descriptor lookup failed for element %s: %s", element_id, exc)
        return None
    if found is None:
        return None
    if isinstance(found, ElementDescriptor):
        return found
    if isinstance(found, Mapping):
        return ElementDescriptor.from_mapping(element_id, found)
    logger.warning("descriptor lookup for element %s returned %r", element_id, type(found).__name__)
    return None


def resolve_descriptors(
    element_ids: Iterable[ElementId],
    resolve: DescriptorResolver,
    max_workers: int = DEFAULT_MAX_ENRICHMENT_WORKERS,
) -> Dict[ElementId, Optional[ElementDescriptor]]:
    """Resolve each distinct id once; returns {id: descriptor or None} in input order."""
    ids = dedupe_element_ids(element_ids)
    if not ids:
        return {}

    workers = min(max(1, max_workers), len(ids))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futures = {element_id: ex.submit(_resolve_one, resolve, element_id) for element_id in ids}
        resolved = {element_id: fut.result() for element_id, fut in futures.items()}

    unresolved = [element_id for element_id, d in resolved.items() if d is None]
    if unresolved:
        logger.warning("%d element(s) could not be resolved: %s", len(unresolved), unresolved)
    return resolved


def enrich_elements(
    element_ids: Iterable[ElementId],
    resolve: DescriptorResolver,
    max_workers: int = DEFAULT_MAX_ENRICHMENT_WORKERS,
    keep_unresolved: bool = False,
) -> List[Dict[str, Any]]:
    """Return one {node_id, node} entry per resolved element.

    With keep_unresolved, unresolved elements are kept as
    {node_id, unresolved: True} instead of being dropped.
    """
    out: List[Dict[str, Any]] = []
    for element_id, descriptor in resolve_descriptors(element_ids, resolve, max_workers).items():
        if descriptor is not None:
            out.append({"node_id": element_id, "node": descriptor.to_node()})
        elif keep_unresolved:
            out.append({"node_id": element_id, "unresolved": True})
    return out


def enrich_diagnostics(
    records: Iterable[Any],
    resolve: DescriptorResolver,
    max_workers: int = DEFAULT_MAX_ENRICHMENT_WORKERS,
) -> List[Dict[str, Any]]:
    """Attach descriptors to DiagnosticRecords.

    All element ids across all records are resolved in one fan-out. A record
    with no resolvable element is omitted.
    """
    records = list(records)
    all_ids = [element_id for record in records for element_id in record.element_ids]
    resolved = resolve_descriptors(all_ids, resolve, max_workers)

    enriched = []
    for record in records:
        nodes = [
            resolved[element_id].to_node()
            for element_id in record.element_ids
            if resolved.get(element_id) is not None
        ]
        if not nodes:
            logger.debug("dropping diagnostic %r: no element resolved", record.group_key)
            continue
        item = record.to_dict()
        item["nodes"] = nodes
        enriched.append(item)
    return enriched
