"""Shared fixtures for Trace Element Analyzer tests."""

import pytest
from pathlib import Path

from trace_builders import (
    UNSUPPORTED_CSS,
    make_animation_begin,
    make_composite_status,
    make_layout_shift_event,
)

# Project root
ROOT = Path(__file__).parent.parent

# Path to knowledge files
KNOWLEDGE_DIR = ROOT / "trace_tools" / "knowledge"


@pytest.fixture
def knowledge_dir():
    """Path to the bundled knowledge directory."""
    return KNOWLEDGE_DIR


@pytest.fixture
def two_shift_events():
    """Scenario A: node 60 and node 25 share one shift; node 60 shifts again alone."""
    return [
        make_layout_shift_event(1, [
            {"new_rect": [0, 0, 200, 200], "node_id": 60, "old_rect": [0, 0, 200, 100]},
            {"new_rect": [0, 300, 200, 200], "node_id": 25, "old_rect": [0, 100, 200, 100]},
        ]),
        make_layout_shift_event(0.3, [
            {"new_rect": [0, 100, 200, 200], "node_id": 60, "old_rect": [0, 0, 200, 200]},
        ]),
    ]


@pytest.fixture
def seven_node_shift_events():
    """Scenario B: seven nodes across three shifts (scores 1, 1, 0.75)."""
    return [
        make_layout_shift_event(1, [
            {"new_rect": [0, 100, 100, 100], "node_id": 1, "old_rect": [0, 0, 100, 100]},
            {"new_rect": [0, 200, 100, 100], "node_id": 2, "old_rect": [0, 100, 100, 100]},
        ]),
        make_layout_shift_event(1, [
            {"new_rect": [0, 100, 200, 200], "node_id": 3, "old_rect": [0, 100, 200, 200]},
        ]),
        make_layout_shift_event(0.75, [
            {"new_rect": [0, 0, 100, 50], "node_id": 4, "old_rect": [0, 0, 100, 100]},
            {"new_rect": [0, 0, 100, 50], "node_id": 5, "old_rect": [0, 0, 100, 100]},
            {"new_rect": [0, 0, 100, 200], "node_id": 6, "old_rect": [0, 0, 100, 100]},
            {"new_rect": [0, 0, 100, 200], "node_id": 7, "old_rect": [0, 0, 100, 100]},
        ]),
    ]


@pytest.fixture
def animation_trace():
    """A small trace: one non-composited animation on node 4 among unrelated events."""
    return {
        "traceEvents": [
            {"name": "TracingStartedInBrowser", "ph": "I", "ts": 1},
            make_animation_begin("1", 4, local="0x1"),
            {"name": "Paint", "ph": "X", "ts": 2, "dur": 10},
            make_animation_begin("2", 5, local="0x2"),
            make_composite_status("0x1", UNSUPPORTED_CSS, unsupported_properties=["height"]),
            make_layout_shift_event(0.5, [
                {"new_rect": [0, 50, 100, 100], "node_id": 9, "old_rect": [0, 0, 100, 100]},
            ]),
        ],
    }


@pytest.fixture
def trace_elements():
    """Pre-gathered element descriptors for the animation_trace fixture."""
    return [
        {
            "traceEventType": "animation",
            "devtoolsNodePath": "1,HTML,1,BODY,1,DIV",
            "selector": "body > div#animated-boi",
            "nodeLabel": "div",
            "snippet": '<div id="animated-boi">',
            "nodeId": 4,
            "animations": [{"id": "1", "name": "example"}],
        },
    ]
