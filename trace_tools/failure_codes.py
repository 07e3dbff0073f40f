#!/usr/bin/env python3
"""Failure code decoding for non-composited animations.

A composite-status event reports why an animation could not run on the
compositor as a bitmask (compositeFailed). Each bit maps to one entry in the
failure reason catalog (knowledge/failure_reasons.yaml). Only actionable
entries, the ones a page author can fix, ever reach a diagnostic.

What happens to bits that no actionable entry explains is a policy choice:

- actionable_only: any unexplained bit suppresses the whole diagnostic. An
  animation is reported only when every reason it failed is one we can
  explain.
- partial: report whatever actionable reasons matched, and flag
  has_additional_causes when other bits were set too.

Usage (CLI):
    python -m trace_tools.failure_codes --code 8192
    python -m trace_tools.failure_codes --code 0x2020 --policy partial

Usage (import):
    from trace_tools.failure_codes import decode_failure_code
    decoded = decode_failure_code(1 << 13)
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from trace_tools.errors import CatalogError

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "knowledge" / "failure_reasons.yaml"


class FailurePolicy(str, Enum):
    ACTIONABLE_ONLY = "actionable_only"
    PARTIAL = "partial"


@dataclass(frozen=True)
class FailureReason:
    bit_flag: int
    description: str
    actionable: bool
    name: str = ""


@dataclass
class DecodedFailure:
    failure_code: int
    reasons: List[str] = field(default_factory=list)
    unexplained_bits: int = 0
    reportable: bool = False

    @property
    def has_additional_causes(self) -> bool:
        return self.unexplained_bits != 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "failure_code": self.failure_code,
            "reasons": list(self.reasons),
            "unexplained_bits": self.unexplained_bits,
            "has_additional_causes": self.has_additional_causes,
            "reportable": self.reportable,
        }


# ──────────────────────────────────────────────────
# Catalog loading
# ──────────────────────────────────────────────────


def _parse_catalog(definitions: Any, source: Path) -> Tuple[FailureReason, ...]:
    if not isinstance(definitions, dict) or not isinstance(definitions.get("failure_reasons"), list):
        raise CatalogError(f"{source}: expected a top-level 'failure_reasons' list")

    reasons = []
    seen_bits = set()
    for entry in definitions["failure_reasons"]:
        if not isinstance(entry, dict):
            raise CatalogError(f"{source}: catalog entries must be mappings, got {entry!r}")
        bit = entry.get("bit")
        description = entry.get("description")
        if not isinstance(bit, int) or isinstance(bit, bool) or bit < 0:
            raise CatalogError(f"{source}: invalid bit {bit!r}")
        if not isinstance(description, str) or not description:
            raise CatalogError(f"{source}: bit {bit} has no description")
        if bit in seen_bits:
            raise CatalogError(f"{source}: bit {bit} listed twice")
        seen_bits.add(bit)
        reasons.append(FailureReason(
            bit_flag=1 << bit,
            description=description,
            actionable=bool(entry.get("actionable", False)),
            name=str(entry.get("name", "")),
        ))
    return tuple(reasons)


def _read_catalog(path: Path) -> Tuple[FailureReason, ...]:
    import yaml

    try:
        with open(path, "r") as f:
            definitions = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise CatalogError(f"Cannot load failure catalog {path}: {exc}") from exc
    return _parse_catalog(definitions, path)


@lru_cache(maxsize=None)
def _default_catalog() -> Tuple[FailureReason, ...]:
    return _read_catalog(DEFAULT_CATALOG_PATH)


def load_failure_catalog(path: Optional[Path] = None) -> Tuple[FailureReason, ...]:
    """Load the failure reason catalog.

    The bundled catalog is read once per process and shared; it is an
    immutable tuple, so concurrent analyses can use it without locking.
    """
    if path is None or Path(path).resolve() == DEFAULT_CATALOG_PATH:
        return _default_catalog()
    return _read_catalog(Path(path))


# ──────────────────────────────────────────────────
# Decoding
# ──────────────────────────────────────────────────


def get_actionable_failure_reasons(
    failure_code: int,
    catalog: Optional[Sequence[FailureReason]] = None,
) -> List[str]:
    """Return descriptions of every actionable reason whose bit is set."""
    catalog = load_failure_catalog() if catalog is None else catalog
    return [r.description for r in catalog if r.actionable and failure_code & r.bit_flag]


def decode_failure_code(
    failure_code: int,
    policy: FailurePolicy = FailurePolicy.ACTIONABLE_ONLY,
    catalog: Optional[Sequence[FailureReason]] = None,
) -> DecodedFailure:
    """Decode a compositeFailed bitmask under the given policy.

    A code of 0 (composited fine) or one with no actionable reason is never
    reportable. Raises ValueError for a negative code.
    """
    if failure_code < 0:
        raise ValueError(f"Failure code must be non-negative, got {failure_code}")
    catalog = load_failure_catalog() if catalog is None else catalog
    policy = FailurePolicy(policy)

    actionable_mask = 0
    reasons = []
    for reason in catalog:
        if reason.actionable and failure_code & reason.bit_flag:
            reasons.append(reason.description)
            actionable_mask |= reason.bit_flag

    unexplained = failure_code & ~actionable_mask
    if not reasons:
        reportable = False
    elif policy is FailurePolicy.ACTIONABLE_ONLY:
        reportable = unexplained == 0
    else:
        reportable = True

    return DecodedFailure(
        failure_code=failure_code,
        reasons=reasons,
        unexplained_bits=unexplained,
        reportable=reportable,
    )


def describe_bits(failure_code: int, catalog: Optional[Sequence[FailureReason]] = None) -> List[Dict[str, Any]]:
    """List every set bit with its catalog entry, or 'unknown' when uncatalogued."""
    if failure_code < 0:
        raise ValueError(f"Failure code must be non-negative, got {failure_code}")
    catalog = load_failure_catalog() if catalog is None else catalog
    by_flag = {r.bit_flag: r for r in catalog}
    out = []
    bit = 0
    while failure_code >> bit:
        flag = 1 << bit
        if failure_code & flag:
            reason = by_flag.get(flag)
            out.append({
                "bit": bit,
                "description": reason.description if reason else "unknown",
                "actionable": reason.actionable if reason else False,
            })
        bit += 1
    return out


# ──────────────────────────────────────────────────
# CLI interface
# ──────────────────────────────────────────────────


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for CLI usage."""
    parser = argparse.ArgumentParser(
        description="Decode a compositeFailed bitmask into failure reasons"
    )
    parser.add_argument(
        "--code", required=True, type=lambda s: int(s, 0),
        help="Failure code (decimal, or 0x-prefixed hex)"
    )
    parser.add_argument(
        "--policy", default=FailurePolicy.ACTIONABLE_ONLY.value,
        choices=[p.value for p in FailurePolicy],
        help="How to treat bits with no actionable catalog entry"
    )
    args = parser.parse_args(argv)
    if args.code < 0:
        parser.error(f"--code must be non-negative, got {args.code}")
    return args


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    decoded = decode_failure_code(args.code, FailurePolicy(args.policy))
    result = decoded.to_dict()
    result["bits"] = describe_bits(args.code)
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
