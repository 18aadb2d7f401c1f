from __future__ import annotations

from typing import Any

import pytest

from perfdiag.dom_session import CdpDomSession
from perfdiag.errors import CdpError


class DummyConn:
    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any] | None]] = []
        self.responses = responses or {}

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.calls.append((method, params))
        return self.responses.get(method, {})


def test_snapshot_requests_full_pierced_document() -> None:
    conn = DummyConn()
    CdpDomSession(conn).snapshot_document()
    assert conn.calls == [("DOM.getDocument", {"depth": -1, "pierce": True})]


def test_translate_ids_keeps_request_parallel() -> None:
    conn = DummyConn({"DOM.pushNodesByBackendIdsToFrontend": {"nodeIds": [12, 0]}})
    session = CdpDomSession(conn)
    assert session.translate_ids([1, 2, 3]) == [12, 0, 0]
    assert conn.calls[0] == ("DOM.pushNodesByBackendIdsToFrontend", {"backendNodeIds": [1, 2, 3]})
    assert session.translate_ids([]) == []


def test_marker_set_and_clear_use_configured_attribute() -> None:
    conn = DummyConn()
    session = CdpDomSession(conn, marker_attribute="tmpmark")
    session.set_marker(5, "cumulative-layout-shift")
    session.clear_marker(5)
    assert conn.calls == [
        ("DOM.setAttributeValue", {"nodeId": 5, "name": "tmpmark", "value": "cumulative-layout-shift"}),
        ("DOM.removeAttribute", {"nodeId": 5, "name": "tmpmark"}),
    ]


def test_query_marked_evaluates_by_value() -> None:
    rows = [{"tag": "largest-contentful-paint", "path": "1,HTML", "selector": "img", "label": "", "snippet": "<img>"}]
    conn = DummyConn({"Runtime.evaluate": {"result": {"type": "object", "value": rows + ["junk"]}}})
    assert CdpDomSession(conn, marker_attribute="tmpmark").query_marked() == rows
    method, params = conn.calls[0]
    assert method == "Runtime.evaluate"
    assert params is not None and params["returnByValue"] is True
    assert '("tmpmark")' in params["expression"]


def test_query_marked_raises_on_page_exception() -> None:
    conn = DummyConn({"Runtime.evaluate": {"exceptionDetails": {"text": "Uncaught"}}})
    with pytest.raises(CdpError):
        CdpDomSession(conn).query_marked()
