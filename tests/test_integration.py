#!/usr/bin/env python3
"""End-to-end integration test: trace -> analyze -> enrich -> report.

Runs the full pipeline the way the CLI does and checks the output products,
not just that the code runs:
- Is the non-composited animation found, named and explained?
- Are orphaned and unrelated events kept out of the findings?
- Is everything JSON-serializable?
"""

import json

import pytest

from trace_tools import run_analysis
from trace_tools.analyze import animation_names_from_elements
from trace_tools.enrichment import descriptors_from_trace_elements, enrich_diagnostics
from trace_tools.formatter import build_animation_audit, build_layout_shift_table


class TestFullPipeline:

    @pytest.fixture(autouse=True)
    def run_pipeline(self, animation_trace, trace_elements):
        self.result = run_analysis(
            animation_trace,
            animation_names=animation_names_from_elements(trace_elements),
        )
        resolve = descriptors_from_trace_elements(trace_elements)
        self.enriched = enrich_diagnostics(self.result.animation_diagnostics, resolve)
        self.audit = build_animation_audit(self.enriched)
        self.shift_table = build_layout_shift_table(self.result.layout_shift_elements, resolve)

    def test_animation_is_grouped_by_name(self):
        assert [d.group_key for d in self.result.animation_diagnostics] == ["example"]

    def test_audit_reports_one_animation(self):
        assert self.audit["displayValue"] == "1 animation found"
        row = self.audit["details"]["items"][0]
        assert row["animation"] == "example"
        assert row["failureString"] == "Unsupported CSS Property: height"
        assert row["subItems"]["items"][0]["node"]["selector"] == "body > div#animated-boi"

    def test_orphaned_animation_is_only_listed_as_animated(self):
        ids = [e["node_id"] for e in self.result.animated_elements]
        assert 5 in ids
        assert all(5 not in d.element_ids for d in self.result.animation_diagnostics)

    def test_layout_shift_table(self):
        items = self.shift_table["details"]["items"]
        assert items == [{"node": {"type": "node", "nodeId": 9}, "score": pytest.approx(0.5)}]

    def test_everything_is_json_serializable(self):
        payload = {
            "result": self.result.to_dict(),
            "enriched": self.enriched,
            "audit": self.audit,
            "shift_table": self.shift_table,
        }
        assert json.loads(json.dumps(payload)) == payload


class TestAnimationNames:

    def test_reads_names_from_elements(self, trace_elements):
        assert animation_names_from_elements(trace_elements) == {"1": "example"}

    def test_ignores_malformed_entries(self):
        elements = [{"animations": "x"}, {"animations": [{"id": "", "name": "a"}, {"id": 2, "name": "b"}]}]
        assert animation_names_from_elements(elements) == {"2": "b"}
