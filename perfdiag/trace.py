"""Helpers for reading already-decoded trace payloads."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

LAYOUT_SHIFT_EVENT = "LayoutShift"
LCP_CANDIDATE_EVENT = "largestContentfulPaint::Candidate"
LCP_INVALIDATE_EVENT = "largestContentfulPaint::Invalidate"


def trace_events(trace: Any) -> list[dict[str, Any]]:
    """Return the event list of a trace given either as a list or a `{"traceEvents": [...]}` document."""
    if isinstance(trace, dict):
        raw = trace.get("traceEvents")
    else:
        raw = trace
    if not isinstance(raw, list):
        return []
    return [ev for ev in raw if isinstance(ev, dict)]


def event_data(event: dict[str, Any]) -> dict[str, Any] | None:
    args = event.get("args")
    if not isinstance(args, dict):
        return None
    data = args.get("data")
    return data if isinstance(data, dict) else None


def events_named(events: Iterable[dict[str, Any]], name: str) -> list[dict[str, Any]]:
    return [ev for ev in events if isinstance(ev, dict) and ev.get("name") == name]


def lcp_node_id(events: Iterable[dict[str, Any]]) -> int | None:
    """Node id of the final Largest Contentful Paint candidate, if it was not invalidated."""
    node_id: int | None = None
    for ev in events:
        if not isinstance(ev, dict):
            continue
        name = ev.get("name")
        if name == LCP_CANDIDATE_EVENT:
            data = event_data(ev) or {}
            candidate = data.get("nodeId")
            node_id = candidate if isinstance(candidate, int) and not isinstance(candidate, bool) else None
        elif name == LCP_INVALIDATE_EVENT:
            node_id = None
    return node_id or None


__all__ = [
    "LAYOUT_SHIFT_EVENT",
    "LCP_CANDIDATE_EVENT",
    "LCP_INVALIDATE_EVENT",
    "event_data",
    "events_named",
    "lcp_node_id",
    "trace_events",
]
