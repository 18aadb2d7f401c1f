from __future__ import annotations

from typing import Any

import pytest

from perfdiag.errors import MissingTraceDataError, ResolutionError
from perfdiag.resolver import METRIC_CLS, METRIC_LCP, NodeResolver, group_by_metric


class DummySession:
    """Records every exchange; translates backend id N to protocol id N + 100."""

    def __init__(
        self,
        *,
        unresolved: set[int] | None = None,
        fail_clear: set[int] | None = None,
        fail_query: bool = False,
        fail_mark: set[int] | None = None,
    ) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.marks: dict[int, str] = {}
        self.unresolved = unresolved or set()
        self.fail_clear = fail_clear or set()
        self.fail_query = fail_query
        self.fail_mark = fail_mark or set()

    def snapshot_document(self) -> None:
        self.calls.append(("snapshot", None))

    def translate_ids(self, ids: list[int]) -> list[int]:
        self.calls.append(("translate", list(ids)))
        return [0 if i in self.unresolved else i + 100 for i in ids]

    def set_marker(self, node_id: int, tag: str) -> None:
        self.calls.append(("mark", node_id))
        if node_id in self.fail_mark:
            raise OSError("mark failed")
        self.marks[node_id] = tag

    def query_marked(self) -> list[dict[str, Any]]:
        self.calls.append(("query", None))
        if self.fail_query:
            raise OSError("socket closed")
        return [
            {"tag": tag, "path": f"1,HTML,{nid}", "selector": f"div#n{nid}", "label": f"node {nid}", "snippet": "<div>"}
            for nid, tag in self.marks.items()
        ]

    def clear_marker(self, node_id: int) -> None:
        self.calls.append(("clear", node_id))
        if node_id in self.fail_clear:
            raise OSError("clear failed")
        self.marks.pop(node_id, None)


def _shift(node_id: int, size: int) -> dict[str, Any]:
    rect = [0, 0, size, size]
    return {"name": "LayoutShift", "args": {"data": {"impacted_nodes": [{"node_id": node_id, "old_rect": rect, "new_rect": rect}]}}}


def test_resolve_runs_exchanges_in_order() -> None:
    session = DummySession()
    elements = NodeResolver(session).resolve([(1, METRIC_CLS), (2, METRIC_CLS)])

    assert [c[0] for c in session.calls] == ["snapshot", "translate", "mark", "mark", "query", "clear", "clear"]
    assert session.marks == {}
    assert [el.css_selector for el in elements] == ["div#n101", "div#n102"]
    assert all(el.metric_name == METRIC_CLS for el in elements)
    assert elements[0].to_dict()["dom_path"] == "1,HTML,101"


def test_unresolved_ids_are_absent_not_fatal() -> None:
    session = DummySession(unresolved={2})
    elements = NodeResolver(session).resolve([(1, METRIC_CLS), (2, METRIC_CLS), (3, METRIC_CLS)])
    assert [el.css_selector for el in elements] == ["div#n101", "div#n103"]
    assert ("mark", 102) not in session.calls


def test_nothing_resolves_skips_marking() -> None:
    session = DummySession(unresolved={1})
    assert NodeResolver(session).resolve([(1, METRIC_CLS)]) == []
    assert [c[0] for c in session.calls] == ["snapshot", "translate"]


def test_empty_batch_does_not_touch_session() -> None:
    session = DummySession()
    assert NodeResolver(session).resolve([]) == []
    assert session.calls == []


def test_clear_failure_still_attempts_every_node() -> None:
    session = DummySession(fail_clear={102})
    with pytest.raises(ResolutionError):
        NodeResolver(session).resolve([(1, METRIC_CLS), (2, METRIC_CLS), (3, METRIC_CLS)])
    clears = [c[1] for c in session.calls if c[0] == "clear"]
    assert clears == [101, 102, 103]


def test_query_failure_is_primary_and_markers_cleared() -> None:
    session = DummySession(fail_query=True, fail_clear={101})
    with pytest.raises(ResolutionError) as excinfo:
        NodeResolver(session).resolve([(1, METRIC_CLS), (2, METRIC_CLS)])
    assert "query" in excinfo.value.reason
    assert [c[1] for c in session.calls if c[0] == "clear"] == [101, 102]


def test_mark_failure_clears_issued_marks() -> None:
    session = DummySession(fail_mark={102})
    with pytest.raises(ResolutionError) as excinfo:
        NodeResolver(session).resolve([(1, METRIC_CLS), (2, METRIC_CLS), (3, METRIC_CLS)])
    assert excinfo.value.details["nodeId"] == 102
    assert [c[1] for c in session.calls if c[0] == "clear"] == [101, 102]
    assert ("query", None) not in session.calls


def test_translate_failure_wrapped() -> None:
    class BrokenSession(DummySession):
        def translate_ids(self, ids: list[int]) -> list[int]:
            raise OSError("gone")

    with pytest.raises(ResolutionError):
        NodeResolver(BrokenSession()).resolve([(1, METRIC_CLS)])


def test_collect_requires_trace() -> None:
    with pytest.raises(MissingTraceDataError) as excinfo:
        NodeResolver(DummySession()).collect(None)
    assert excinfo.value.to_dict()["kind"] == "MissingTraceDataError"


def test_collect_tags_lcp_and_top_shift_nodes() -> None:
    trace = {
        "traceEvents": [
            _shift(5, 10),
            _shift(6, 30),
            {"name": "largestContentfulPaint::Candidate", "args": {"data": {"nodeId": 9}}},
        ]
    }
    session = DummySession()
    elements = NodeResolver(session).collect(trace)

    assert ("translate", [9, 6, 5]) in session.calls
    grouped = group_by_metric(elements)
    assert [el.css_selector for el in grouped[METRIC_LCP]] == ["div#n109"]
    assert [el.css_selector for el in grouped[METRIC_CLS]] == ["div#n106", "div#n105"]


def test_node_tagged_twice_keeps_first_tag() -> None:
    session = DummySession()
    elements = NodeResolver(session).resolve([(4, METRIC_LCP), (4, METRIC_CLS)])
    assert [el.metric_name for el in elements] == [METRIC_LCP]
    assert [c for c in session.calls if c[0] == "mark"] == [("mark", 104)]


def test_repeated_calls_are_identical() -> None:
    tagged = [(1, METRIC_CLS), (2, METRIC_LCP)]
    first = NodeResolver(DummySession()).resolve(tagged)
    second = NodeResolver(DummySession()).resolve(tagged)
    assert first == second
