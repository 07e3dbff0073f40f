"""Tests for compositeFailed bitmask decoding."""

import json
import subprocess
import sys
from pathlib import Path

import pytest

from trace_tools.errors import CatalogError
from trace_tools.failure_codes import (
    FailurePolicy,
    FailureReason,
    decode_failure_code,
    describe_bits,
    get_actionable_failure_reasons,
    load_failure_catalog,
)

ROOT = Path(__file__).resolve().parent.parent

UNSUPPORTED_CSS = 1 << 13
UNKNOWN_BIT = 1 << 24
NON_ACTIONABLE_BIT = 1 << 5   # target has invalid compositing state


class TestActionableOnlyPolicy:
    """Default policy: any unexplained bit suppresses the diagnostic."""

    def test_unsupported_css_alone_decodes_to_one_reason(self):
        decoded = decode_failure_code(UNSUPPORTED_CSS)
        assert decoded.reasons == ["Unsupported CSS Property"]
        assert decoded.reportable is True
        assert decoded.has_additional_causes is False

    def test_unknown_bit_suppresses(self):
        decoded = decode_failure_code(UNSUPPORTED_CSS | UNKNOWN_BIT)
        assert decoded.reasons == ["Unsupported CSS Property"]
        assert decoded.unexplained_bits == UNKNOWN_BIT
        assert decoded.reportable is False

    def test_known_non_actionable_bit_suppresses(self):
        decoded = decode_failure_code(UNSUPPORTED_CSS | NON_ACTIONABLE_BIT)
        assert decoded.reportable is False

    def test_multiple_actionable_bits(self):
        decoded = decode_failure_code(UNSUPPORTED_CSS | (1 << 11) | (1 << 3))
        assert decoded.reportable is True
        assert set(decoded.reasons) == {
            "Unsupported CSS Property",
            "Transform-related property depends on box size",
            "Effect has unsupported timing parameters",
        }

    def test_zero_code_is_not_reportable(self):
        decoded = decode_failure_code(0)
        assert decoded.reasons == []
        assert decoded.reportable is False


class TestPartialPolicy:
    """Partial policy: report actionable reasons and flag the rest."""

    def test_reports_actionable_reasons_with_flag(self):
        decoded = decode_failure_code(UNSUPPORTED_CSS | UNKNOWN_BIT, FailurePolicy.PARTIAL)
        assert decoded.reasons == ["Unsupported CSS Property"]
        assert decoded.reportable is True
        assert decoded.has_additional_causes is True

    def test_accepts_policy_by_name(self):
        decoded = decode_failure_code(UNSUPPORTED_CSS, "partial")
        assert decoded.reportable is True
        assert decoded.has_additional_causes is False

    def test_nothing_actionable_is_still_not_reportable(self):
        decoded = decode_failure_code(NON_ACTIONABLE_BIT | UNKNOWN_BIT, FailurePolicy.PARTIAL)
        assert decoded.reasons == []
        assert decoded.reportable is False


class TestCatalog:

    def test_catalog_is_loaded_once(self):
        assert load_failure_catalog() is load_failure_catalog()

    def test_catalog_is_immutable(self):
        catalog = load_failure_catalog()
        assert isinstance(catalog, tuple)
        with pytest.raises(AttributeError):
            catalog[0].description = "changed"

    def test_custom_catalog(self):
        catalog = (FailureReason(bit_flag=1, description="First", actionable=True),)
        assert get_actionable_failure_reasons(3, catalog) == ["First"]
        assert decode_failure_code(3, catalog=catalog).unexplained_bits == 2

    def test_catalog_from_file(self, tmp_path):
        path = tmp_path / "reasons.yaml"
        path.write_text(
            "failure_reasons:\n"
            "  - bit: 2\n"
            "    description: Two\n"
            "    actionable: true\n"
        )
        catalog = load_failure_catalog(path)
        assert catalog == (FailureReason(bit_flag=4, description="Two", actionable=True),)

    @pytest.mark.parametrize("body", [
        "[]\n",
        "failure_reasons:\n  - bit: -1\n    description: x\n",
        "failure_reasons:\n  - bit: 1\n",
        "failure_reasons:\n  - {bit: 1, description: a}\n  - {bit: 1, description: b}\n",
        "failure_reasons: [\n",
    ])
    def test_malformed_catalog_raises(self, tmp_path, body):
        path = tmp_path / "bad.yaml"
        path.write_text(body)
        with pytest.raises(CatalogError):
            load_failure_catalog(path)

    def test_negative_code_is_rejected(self):
        with pytest.raises(ValueError):
            describe_bits(-1)
        with pytest.raises(ValueError):
            decode_failure_code(-1)

    def test_describe_bits_flags_unknown(self):
        bits = describe_bits(UNSUPPORTED_CSS | UNKNOWN_BIT)
        assert bits == [
            {"bit": 13, "description": "Unsupported CSS Property", "actionable": True},
            {"bit": 24, "description": "unknown", "actionable": False},
        ]


class TestCLI:

    def test_decodes_hex_code(self):
        result = subprocess.run(
            [sys.executable, "-m", "trace_tools.failure_codes", "--code", "0x2000"],
            capture_output=True,
            text=True,
            timeout=30,
            cwd=ROOT,
        )
        assert result.returncode == 0, result.stderr
        output = json.loads(result.stdout)
        assert output["reasons"] == ["Unsupported CSS Property"]
        assert output["reportable"] is True

    def test_rejects_negative_code(self):
        result = subprocess.run(
            [sys.executable, "-m", "trace_tools.failure_codes", "--code", "-1"],
            capture_output=True,
            text=True,
            timeout=30,
            cwd=ROOT,
        )
        assert result.returncode == 2
        assert "non-negative" in result.stderr
