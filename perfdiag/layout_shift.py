"""Attribute cumulative layout shift to the DOM nodes that moved.

The trace only records which nodes moved and where they were before and after each
shift. A node's impact for one shift is the area it swept: old area + new area minus
their overlap, so a node that did not move still counts its area once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from .geometry import Rect, area, normalize, overlap_area
from .ranking import accumulate, rank as rank_totals
from .trace import LAYOUT_SHIFT_EVENT, event_data

logger = logging.getLogger("perfdiag.layout_shift")

TOP_NODE_LIMIT = 5


@dataclass(frozen=True)
class LayoutShiftRecord:
    node_id: int
    old_rect: Rect
    new_rect: Rect

    @property
    def impact(self) -> float:
        return area(self.old_rect) + area(self.new_rect) - overlap_area(self.old_rect, self.new_rect)


def _trace_rect(raw: Any) -> Rect | None:
    if not isinstance(raw, (list, tuple)) or len(raw) != 4:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in raw):
        return None
    return normalize(raw)


def _record_from_entry(entry: Any) -> LayoutShiftRecord | None:
    if not isinstance(entry, dict):
        return None
    node_id = entry.get("node_id")
    # Backend node ids start at 1; 0 means the node was not attributed.
    if not isinstance(node_id, int) or isinstance(node_id, bool) or not node_id:
        return None
    old_rect = _trace_rect(entry.get("old_rect"))
    new_rect = _trace_rect(entry.get("new_rect"))
    if old_rect is None or new_rect is None:
        return None
    return LayoutShiftRecord(node_id=node_id, old_rect=old_rect, new_rect=new_rect)


def shift_records(events: Iterable[dict[str, Any]]) -> list[LayoutShiftRecord]:
    """Extract impacted-node records from every LayoutShift event, skipping malformed entries."""
    records: list[LayoutShiftRecord] = []
    skipped = 0
    for ev in events:
        if not isinstance(ev, dict) or ev.get("name") != LAYOUT_SHIFT_EVENT:
            continue
        data = event_data(ev)
        if data is None:
            continue
        impacted = data.get("impacted_nodes")
        if not isinstance(impacted, list):
            continue
        for entry in impacted:
            record = _record_from_entry(entry)
            if record is None:
                skipped += 1
                continue
            records.append(record)
    if skipped:
        logger.debug("skipped %d malformed impacted_nodes entries", skipped)
    return records


def contributions(events: Iterable[dict[str, Any]]) -> dict[int, float]:
    """Cumulative impact area per node id, in first-seen order."""
    return accumulate(shift_records(events), key=lambda r: r.node_id, weight=lambda r: r.impact)


def rank(events: Iterable[dict[str, Any]], limit: int = TOP_NODE_LIMIT) -> list[int]:
    """Node ids with the highest cumulative shift impact, heaviest first."""
    return [node_id for node_id, _total in rank_totals(contributions(events), limit)]


__all__ = ["LayoutShiftRecord", "TOP_NODE_LIMIT", "contributions", "rank", "shift_records"]
