"""Command-line entry point: run the analyses over files on disk and print JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import layout_shift
from .attribution import attribute_bundle
from .cdp import CdpConnection
from .config import AnalysisConfig
from .dom_session import CdpDomSession
from .duplication import detect
from .errors import AnalysisError, CdpError, InputError, MissingTraceDataError, ResolutionError
from .resolver import NodeResolver
from .savings import ThroughputNetworkModel, estimate
from .trace import trace_events

logger = logging.getLogger("perfdiag")


def _write(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")


def _read_text(path: Path, *, required: bool = False) -> str | None:
    """Read a UTF-8 input file; a missing optional file reads as None."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if not required:
            return None
        raise InputError(reason=f"File not found: {path}", details={"path": str(path)}) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise InputError(reason=f"Cannot read {path}: {exc}", details={"path": str(path)}) from exc


def _bundle_paths(arg: str) -> tuple[Path, Path]:
    """`bundle.js=bundle.js.map`, or just `bundle.js` with the map next to it."""
    if "=" in arg:
        js, _, map_path = arg.partition("=")
        return Path(js), Path(map_path)
    return Path(arg), Path(arg + ".map")


def run_shifts(args: argparse.Namespace, config: AnalysisConfig) -> dict[str, Any]:
    raw = _read_text(Path(args.trace))
    if raw is None:
        raise MissingTraceDataError(details={"path": str(args.trace)})
    try:
        trace = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MissingTraceDataError(reason=f"Trace is not valid JSON: {exc}", details={"path": str(args.trace)}) from exc
    events = trace_events(trace)
    contributions = layout_shift.contributions(events)
    node_ids = layout_shift.rank(events, config.top_shift_nodes)
    out: dict[str, Any] = {
        "nodeIds": node_ids,
        "impact": {str(node_id): contributions[node_id] for node_id in node_ids},
    }
    if args.ws_url:
        try:
            conn = CdpConnection(args.ws_url, timeout=config.cdp_timeout)
        except CdpError as exc:
            raise ResolutionError(reason=str(exc)) from exc
        try:
            session = CdpDomSession(conn, marker_attribute=config.marker_attribute)
            elements = NodeResolver(session, top_shift_nodes=config.top_shift_nodes).collect(trace)
        finally:
            conn.close()
        out["elements"] = [el.to_dict() for el in elements]
    return out


def run_duplicates(args: argparse.Namespace, config: AnalysisConfig) -> dict[str, Any]:
    records = []
    for arg in args.bundles:
        js_path, map_path = _bundle_paths(arg)
        content = _read_text(js_path, required=True) or ""
        raw_map: str | dict[str, Any] | None = _read_text(map_path)
        if raw_map is None:
            logger.info("no source map for %s; bundle counted as unattributed", js_path)
            raw_map = {}
        records.append(attribute_bundle(args.url_prefix + js_path.name, content, raw_map))

    threshold = config.ignore_threshold_bytes if args.threshold is None else max(0, args.threshold)
    result = detect(records, threshold)
    model = ThroughputNetworkModel(throughput_kbps=config.throughput_kbps, rtt_ms=config.rtt_ms)
    return {**result.to_dict(), "savingsMs": round(estimate(result.wasted_bytes_by_url, model), 1)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="perfdiag", description="Layout shift and duplicate code diagnostics")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    shifts = sub.add_parser("shifts", help="rank layout-shift contributors in a trace")
    shifts.add_argument("trace", help="trace JSON file")
    shifts.add_argument("--ws-url", default="", help="page DevTools websocket url to resolve nodes against")

    dup = sub.add_parser("duplicates", help="find code duplicated across bundles")
    dup.add_argument("bundles", nargs="+", help="bundle.js or bundle.js=bundle.js.map")
    dup.add_argument("--threshold", type=int, default=None, help="ignore groups wasting fewer bytes")
    dup.add_argument("--url-prefix", default="", help="prefix for bundle urls in the output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    config = AnalysisConfig.from_env()
    try:
        if args.command == "shifts":
            _write(run_shifts(args, config))
        else:
            _write(run_duplicates(args, config))
    except AnalysisError as e:
        logger.info("analysis_error stage=%s reason=%s", e.stage, e.reason)
        _write(e.to_dict())
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
