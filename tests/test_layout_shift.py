from __future__ import annotations

from typing import Any

from perfdiag import layout_shift


def _shift(*nodes: dict[str, Any]) -> dict[str, Any]:
    return {"name": "LayoutShift", "args": {"data": {"impacted_nodes": list(nodes)}}}


def _node(node_id: Any, old: Any, new: Any) -> dict[str, Any]:
    return {"node_id": node_id, "old_rect": old, "new_rect": new}


def test_rank_empty_trace() -> None:
    assert layout_shift.rank([]) == []
    assert layout_shift.rank([{"name": "Paint", "args": {}}]) == []
    assert layout_shift.rank([{"name": "LayoutShift", "args": {"data": {}}}]) == []


def test_zero_displacement_counts_area_once() -> None:
    events = [_shift(_node(7, [0, 0, 10, 10], [0, 0, 10, 10]))]
    assert layout_shift.contributions(events) == {7: 100}
    assert layout_shift.rank(events) == [7]


def test_impact_is_swept_area() -> None:
    events = [_shift(_node(3, [0, 0, 10, 10], [5, 0, 10, 10]))]
    # 100 + 100 - 50 overlap
    assert layout_shift.contributions(events) == {3: 150}


def test_accumulates_across_events_and_ranks() -> None:
    events = [
        _shift(_node(1, [0, 0, 10, 10], [0, 20, 10, 10]), _node(2, [0, 0, 5, 5], [0, 0, 5, 5])),
        {"name": "Paint"},
        _shift(_node(2, [0, 0, 20, 20], [0, 0, 20, 20])),
        _shift(_node(3, [0, 0, 1, 1], [0, 0, 1, 1])),
    ]
    totals = layout_shift.contributions(events)
    assert totals == {1: 200, 2: 425, 3: 1}
    assert layout_shift.rank(events) == [2, 1, 3]


def test_ties_keep_first_seen_order() -> None:
    rect = [0, 0, 2, 2]
    events = [_shift(_node(9, rect, rect), _node(4, rect, rect)), _shift(_node(6, rect, rect))]
    assert layout_shift.rank(events) == [9, 4, 6]


def test_top_five_only() -> None:
    events = [_shift(*[_node(i, [0, 0, i, i], [0, 0, i, i]) for i in range(1, 9)])]
    assert layout_shift.rank(events) == [8, 7, 6, 5, 4]
    assert layout_shift.rank(events, limit=2) == [8, 7]


def test_malformed_entries_are_skipped() -> None:
    good = [0, 0, 10, 10]
    events = [
        _shift(
            _node(None, good, good),
            _node(0, good, good),
            _node(5, None, good),
            _node(5, good, [1, 2, 3]),
            _node(5, good, ["a", 0, 1, 1]),
            {"old_rect": good, "new_rect": good},
            "garbage",
            _node(8, good, good),
        ),
        {"name": "LayoutShift", "args": {"data": {"impacted_nodes": "nope"}}},
        {"name": "LayoutShift", "args": None},
    ]
    assert layout_shift.contributions(events) == {8: 100}
    assert [r.node_id for r in layout_shift.shift_records(events)] == [8]
