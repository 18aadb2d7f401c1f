"""DOM session collaborator used by the node resolver.

`DomSession` is the surface the resolver needs; `CdpDomSession` implements it over a
DevTools page connection. Marked elements are found again in the page by a temporary
attribute, since the trace only knows backend node ids.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, Protocol

from .config import DEFAULT_MARKER_ATTRIBUTE
from .errors import CdpError


class DomSession(Protocol):
    def snapshot_document(self) -> None: ...

    def translate_ids(self, ids: Sequence[int]) -> list[int]: ...

    def set_marker(self, node_id: int, tag: str) -> None: ...

    def query_marked(self) -> list[dict[str, Any]]: ...

    def clear_marker(self, node_id: int) -> None: ...


class CdpConnectionLike(Protocol):
    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]: ...


# Reads every element carrying the marker attribute. Runs in the page; only the
# fields the resolver maps back are returned.
COLLECT_MARKED_JS = r"""
((marker) => {
  const nodePath = (node) => {
    const parts = [];
    while (node && node.parentNode) {
      const idx = Array.prototype.indexOf.call(node.parentNode.childNodes, node);
      parts.unshift(idx, node.nodeName);
      node = node.parentNode.host || node.parentNode;
      if (node.nodeType === Node.DOCUMENT_NODE) break;
    }
    return parts.join(',');
  };
  const selector = (el) => {
    const parts = [];
    while (el && el.nodeType === Node.ELEMENT_NODE && parts.length < 4) {
      let part = el.localName;
      if (el.id) { parts.unshift(part + '#' + el.id); break; }
      const cls = (el.getAttribute('class') || '').trim().split(/\s+/).filter(Boolean).slice(0, 2);
      if (cls.length) part += '.' + cls.join('.');
      parts.unshift(part);
      el = el.parentElement;
    }
    return parts.join(' > ');
  };
  const label = (el) => {
    const aria = el.getAttribute('aria-label') || el.getAttribute('alt') || el.getAttribute('title');
    const text = aria || (el.innerText || el.textContent || '');
    const trimmed = String(text).replace(/\s+/g, ' ').trim();
    return trimmed.length > 80 ? trimmed.slice(0, 79) + '…' : trimmed;
  };
  const snippet = (el) => {
    const clone = el.cloneNode(false);
    clone.removeAttribute(marker);
    const html = clone.outerHTML || '';
    const open = html.slice(0, html.indexOf('>') + 1);
    return open.length > 500 ? open.slice(0, 499) + '…' : open;
  };
  const out = [];
  for (const el of document.querySelectorAll('[' + marker + ']')) {
    out.push({
      tag: el.getAttribute(marker) || '',
      path: nodePath(el),
      selector: selector(el),
      label: label(el),
      snippet: snippet(el),
    });
  }
  return out;
})
"""


class CdpDomSession:
    """DomSession over one CDP page connection. Not safe for concurrent batches."""

    def __init__(self, conn: CdpConnectionLike, *, marker_attribute: str = DEFAULT_MARKER_ATTRIBUTE) -> None:
        self.conn = conn
        self.marker_attribute = marker_attribute

    def snapshot_document(self) -> None:
        # Without a full document request pushNodesByBackendIdsToFrontend returns 0 ids.
        self.conn.send("DOM.getDocument", {"depth": -1, "pierce": True})

    def translate_ids(self, ids: Sequence[int]) -> list[int]:
        if not ids:
            return []
        result = self.conn.send("DOM.pushNodesByBackendIdsToFrontend", {"backendNodeIds": list(ids)})
        node_ids = result.get("nodeIds") if isinstance(result, dict) else None
        if not isinstance(node_ids, list):
            return [0] * len(ids)
        out = [n if isinstance(n, int) and not isinstance(n, bool) else 0 for n in node_ids]
        # Pad so the output stays parallel to the request.
        return (out + [0] * len(ids))[: len(ids)]

    def set_marker(self, node_id: int, tag: str) -> None:
        self.conn.send(
            "DOM.setAttributeValue",
            {"nodeId": node_id, "name": self.marker_attribute, "value": tag},
        )

    def query_marked(self) -> list[dict[str, Any]]:
        expression = f"({COLLECT_MARKED_JS})({json.dumps(self.marker_attribute)})"
        result = self.conn.send(
            "Runtime.evaluate",
            {"expression": expression, "returnByValue": True, "awaitPromise": True},
        )
        if isinstance(result, dict) and result.get("exceptionDetails"):
            details = result["exceptionDetails"]
            text = details.get("text") if isinstance(details, dict) else None
            raise CdpError(f"Marked node query failed: {text or details}")
        remote = result.get("result") if isinstance(result, dict) else None
        value = remote.get("value") if isinstance(remote, dict) else None
        if not isinstance(value, list):
            return []
        return [row for row in value if isinstance(row, dict)]

    def clear_marker(self, node_id: int) -> None:
        self.conn.send("DOM.removeAttribute", {"nodeId": node_id, "name": self.marker_attribute})


__all__ = ["COLLECT_MARKED_JS", "CdpDomSession", "DomSession"]
