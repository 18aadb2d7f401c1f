"""Resolve trace node ids to page descriptors.

The trace identifies elements by backend node id only. To describe them we translate
the ids into the live DOM, tag each element with a temporary attribute carrying its
metric name, read every tagged element back in one page query, and remove the tags.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any

from . import layout_shift
from .dom_session import DomSession
from .errors import AnalysisError, MissingTraceDataError, ResolutionError
from .trace import lcp_node_id, trace_events

logger = logging.getLogger("perfdiag.resolver")

METRIC_LCP = "largest-contentful-paint"
METRIC_CLS = "cumulative-layout-shift"


@dataclass(frozen=True)
class TraceElement:
    metric_name: str
    dom_path: str
    css_selector: str
    accessible_label: str
    html_snippet: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _as_str(v: Any) -> str:
    return v if isinstance(v, str) else ""


def _element_from_row(row: dict[str, Any]) -> TraceElement:
    return TraceElement(
        metric_name=_as_str(row.get("tag")),
        dom_path=_as_str(row.get("path")),
        css_selector=_as_str(row.get("selector")),
        accessible_label=_as_str(row.get("label")),
        html_snippet=_as_str(row.get("snippet")),
    )


def _clear_markers(session: DomSession, node_ids: Sequence[int]) -> Exception | None:
    """Attempt to clear every marker; return the first failure instead of raising it."""
    first_error: Exception | None = None
    for node_id in node_ids:
        try:
            session.clear_marker(node_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("clear_marker failed node=%s: %s", node_id, exc)
            if first_error is None:
                first_error = exc
    return first_error


@contextmanager
def marked_nodes(session: DomSession, targets: Sequence[tuple[int, str]]) -> Generator[list[int], None, None]:
    """Mark `(protocol_node_id, tag)` targets for the duration of the block.

    Every mark that was issued gets a clear attempt on exit, including when marking or
    the block itself failed. A cleanup failure never masks the original error; without
    one, it is raised as ResolutionError once all clears were attempted.
    """
    issued: list[int] = []
    failed = False
    try:
        for node_id, tag in targets:
            issued.append(node_id)
            try:
                session.set_marker(node_id, tag)
            except Exception as exc:  # noqa: BLE001
                raise ResolutionError(
                    reason=f"Failed to mark node {node_id}: {exc}",
                    details={"nodeId": node_id, "tag": tag},
                ) from exc
        yield issued
    except BaseException:
        failed = True
        raise
    finally:
        cleanup_error = _clear_markers(session, issued)
        if cleanup_error is not None and not failed:
            raise ResolutionError(
                reason=f"Failed to clear node marker: {cleanup_error}",
                suggestion="Reload the page before collecting again",
                details={"marked": len(issued)},
            ) from cleanup_error


def group_by_metric(elements: Sequence[TraceElement]) -> dict[str, list[TraceElement]]:
    out: dict[str, list[TraceElement]] = {}
    for el in elements:
        out.setdefault(el.metric_name, []).append(el)
    return out


class NodeResolver:
    """Turns trace node ids into TraceElements using a DomSession.

    Batches must not run concurrently against the same session.
    """

    def __init__(self, session: DomSession, *, top_shift_nodes: int = layout_shift.TOP_NODE_LIMIT) -> None:
        self.session = session
        self.top_shift_nodes = top_shift_nodes

    def collect(self, trace: Any) -> list[TraceElement]:
        """Resolve the LCP element and the top layout-shift elements of a captured trace."""
        if trace is None:
            raise MissingTraceDataError()
        events = trace_events(trace)

        tagged: list[tuple[int, str]] = []
        lcp_id = lcp_node_id(events)
        if lcp_id:
            tagged.append((lcp_id, METRIC_LCP))
        tagged.extend((node_id, METRIC_CLS) for node_id in layout_shift.rank(events, self.top_shift_nodes))
        return self.resolve(tagged)

    def resolve(self, tagged_ids: Sequence[tuple[int, str]]) -> list[TraceElement]:
        if not tagged_ids:
            return []

        try:
            self.session.snapshot_document()
            translated = self.session.translate_ids([node_id for node_id, _tag in tagged_ids])
        except AnalysisError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ResolutionError(reason=f"Node id translation failed: {exc}") from exc

        targets: dict[int, str] = {}
        for (raw_id, tag), protocol_id in zip(tagged_ids, translated):
            if not protocol_id:
                logger.debug("node %s did not resolve in the current document", raw_id)
                continue
            # A node tagged twice (e.g. LCP element that also shifted) keeps its first tag.
            targets.setdefault(protocol_id, tag)
        if not targets:
            return []

        with marked_nodes(self.session, list(targets.items())):
            try:
                rows = self.session.query_marked()
            except AnalysisError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise ResolutionError(reason=f"Marked node query failed: {exc}") from exc

        elements = [_element_from_row(row) for row in rows if isinstance(row, dict)]
        logger.info("resolved %d of %d trace nodes", len(elements), len(tagged_ids))
        return elements


__all__ = [
    "METRIC_CLS",
    "METRIC_LCP",
    "NodeResolver",
    "TraceElement",
    "group_by_metric",
    "marked_nodes",
]
