"""CLI entrypoint tests for the tool modules."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parent.parent


def _run_module(module: str, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", module, *args],
        capture_output=True,
        text=True,
        timeout=30,
        cwd=ROOT,
    )


@pytest.mark.parametrize(
    "module",
    [
        "trace_tools.analyze",
        "trace_tools.layout_shift",
        "trace_tools.failure_codes",
    ],
)
def test_tool_modules_support_help(module: str):
    """Module execution should work for help invocation."""
    result = _run_module(module, "--help")
    combined = f"{result.stdout}\n{result.stderr}".lower()
    assert result.returncode == 0, combined
    assert "usage" in combined


def test_analyze_prints_findings(tmp_path, animation_trace, trace_elements):
    trace_path = tmp_path / "trace.json"
    trace_path.write_text(json.dumps(animation_trace))
    elements_path = tmp_path / "elements.json"
    elements_path.write_text(json.dumps(trace_elements))

    result = _run_module(
        "trace_tools.analyze",
        "--input", str(trace_path),
        "--elements", str(elements_path),
        "--report",
    )
    assert result.returncode == 0, result.stderr
    output = json.loads(result.stdout)
    assert output["animation_diagnostics"][0]["group_key"] == "example"
    assert output["animated_elements_enriched"][1] == {"node_id": 5, "unresolved": True}
    assert output["report"]["non_composited_animations"]["displayValue"] == "1 animation found"
    assert output["config"]["failure_policy"] == "actionable_only"


def test_analyze_report_without_elements(tmp_path, animation_trace):
    trace_path = tmp_path / "trace.json"
    trace_path.write_text(json.dumps(animation_trace))

    result = _run_module("trace_tools.analyze", "--input", str(trace_path), "--report", "--top-n", "1")
    assert result.returncode == 0, result.stderr
    output = json.loads(result.stdout)
    rows = output["report"]["non_composited_animations"]["details"]["items"]
    assert rows[0]["subItems"]["items"] == [{"node": {"type": "node", "nodeId": 4}}]
    assert output["config"]["top_n"] == 1


def test_analyze_missing_file_reports_error(tmp_path):
    result = _run_module("trace_tools.analyze", "--input", str(tmp_path / "absent.json"))
    assert result.returncode == 1
    assert "File not found" in json.loads(result.stdout)["error"]


def test_analyze_trace_without_events_reports_error(tmp_path):
    trace_path = tmp_path / "trace.json"
    trace_path.write_text(json.dumps({"metadata": {}}))
    result = _run_module("trace_tools.analyze", "--input", str(trace_path))
    assert result.returncode == 1
    assert "traceEvents" in json.loads(result.stdout)["error"]


def test_layout_shift_cli(tmp_path, two_shift_events):
    trace_path = tmp_path / "trace.json"
    trace_path.write_text(json.dumps({"traceEvents": two_shift_events}))
    result = _run_module("trace_tools.layout_shift", "--input", str(trace_path))
    assert result.returncode == 0, result.stderr
    output = json.loads(result.stdout)
    assert [e["node_id"] for e in output["layout_shift_elements"]] == [60, 25]


def test_layout_shift_cli_trace_without_events_reports_error(tmp_path):
    trace_path = tmp_path / "trace.json"
    trace_path.write_text("{}")
    result = _run_module("trace_tools.layout_shift", "--input", str(trace_path))
    assert result.returncode == 1
    assert "traceEvents" in json.loads(result.stdout)["error"]
