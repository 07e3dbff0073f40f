#!/usr/bin/env python3
"""Correlation pairing: match each animation begin to its composite status.

An animation's "begin" fragment and its terminal composite-status report share
a correlation key but can sit anywhere in the stream, interleaved with other
animations. One forward pass with a key-indexed accumulator is enough.

Per-key lifecycle:
    UNSEEN -> BEGAN    (begin fragment)
    UNSEEN -> REPORTED (status fragment arrived first)
    BEGAN | REPORTED -> RESOLVED (complementary fragment)

RESOLVED is terminal: later fragments for the key are ignored. Until then a
repeated fragment replaces the earlier one. Keys that never resolve are
dropped at the end of the pass and only counted.

Usage (import):
    from trace_tools.pairing import pair_events
    result = pair_events(stream.events)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from trace_tools.schema import AnimationBegin, CompositeStatus, TraceEvent

logger = logging.getLogger(__name__)


class PairState(str, Enum):
    UNSEEN = "unseen"
    BEGAN = "began"
    REPORTED = "reported"
    RESOLVED = "resolved"


@dataclass
class CorrelationPair:
    key: str
    begin: Optional[AnimationBegin] = None
    status: Optional[CompositeStatus] = None

    @property
    def state(self) -> PairState:
        if self.begin is not None and self.status is not None:
            return PairState.RESOLVED
        if self.begin is not None:
            return PairState.BEGAN
        if self.status is not None:
            return PairState.REPORTED
        return PairState.UNSEEN

    @property
    def is_complete(self) -> bool:
        return self.state is PairState.RESOLVED

    def accept(self, event: TraceEvent) -> None:
        """Fold a fragment into the pair unless it is already resolved."""
        if self.is_complete:
            return
        if isinstance(event, AnimationBegin):
            self.begin = event
        elif isinstance(event, CompositeStatus):
            self.status = event


@dataclass
class PairingResult:
    pairs: List[CorrelationPair] = field(default_factory=list)
    orphaned_begins: int = 0
    orphaned_statuses: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "resolved_pairs": len(self.pairs),
            "orphaned_begins": self.orphaned_begins,
            "orphaned_statuses": self.orphaned_statuses,
        }


def pair_events(events: Iterable[TraceEvent]) -> PairingResult:
    """Pair begin and status fragments by correlation key.

    Returns resolved pairs in the order their key was first sighted.
    Begins without a correlation key cannot be paired and are skipped.
    """
    accumulator: Dict[str, CorrelationPair] = {}

    for event in events:
        if not isinstance(event, (AnimationBegin, CompositeStatus)):
            continue
        key = event.correlation_key
        if key is None:
            continue
        pair = accumulator.get(key)
        if pair is None:
            pair = CorrelationPair(key=key)
            accumulator[key] = pair
        pair.accept(event)

    result = PairingResult()
    for pair in accumulator.values():
        state = pair.state
        if state is PairState.RESOLVED:
            result.pairs.append(pair)
        elif state is PairState.BEGAN:
            result.orphaned_begins += 1
        elif state is PairState.REPORTED:
            result.orphaned_statuses += 1

    if result.orphaned_begins or result.orphaned_statuses:
        logger.debug(
            "dropped %d orphaned begin(s) and %d orphaned status report(s)",
            result.orphaned_begins,
            result.orphaned_statuses,
        )
    return result


def resolved_pairs(events: Iterable[TraceEvent]) -> List[CorrelationPair]:
    return pair_events(events).pairs
