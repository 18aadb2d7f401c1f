"""Attribute every byte of a generated bundle to the original source it came from.

Sizes are measured in characters of the bundle text, the unit source map columns use.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .errors import InvalidSourceMapError
from .sourcemap import SourceMap, decode_source_map

logger = logging.getLogger("perfdiag.attribution")


class SourceBytes(NamedTuple):
    source: str | None
    byte_length: int


ByteAttribution = list[SourceBytes]


@dataclass(frozen=True)
class BundleRecord:
    url: str
    total_bytes: int
    attribution: ByteAttribution = field(default_factory=list)

    def unattributed_bytes(self) -> int:
        return sum(entry.byte_length for entry in self.attribution if entry.source is None)


def line_starts(content: str) -> list[int]:
    """Offset of the first character of every line."""
    starts = [0]
    idx = content.find("\n")
    while idx != -1:
        starts.append(idx + 1)
        idx = content.find("\n", idx + 1)
    return starts


def _breakpoints(
    bundle_length: int, source_map: SourceMap, starts: Sequence[int]
) -> list[tuple[int, int | None]]:
    num_sources = len(source_map.sources)
    out: list[tuple[int, int | None]] = []
    skipped = 0
    for mapping in source_map.mappings:
        src = mapping.source_index
        if src is not None and not 0 <= src < num_sources:
            raise InvalidSourceMapError(
                reason=f"Mapping references source index {src} but the map declares {num_sources} sources",
                details={"line": mapping.line, "column": mapping.column, "sourceIndex": src},
            )
        if not 0 <= mapping.line < len(starts) or mapping.column < 0:
            skipped += 1
            continue
        offset = starts[mapping.line] + mapping.column
        if offset >= bundle_length:
            skipped += 1
            continue
        out.append((offset, src))
    if skipped:
        logger.debug("skipped %d mappings outside the bundle", skipped)
    # Stable: mappings sharing an offset keep map order, so the later one owns the range.
    out.sort(key=lambda bp: bp[0])
    return out


def attribute(bundle_length: int, source_map: SourceMap, starts: Sequence[int]) -> ByteAttribution:
    """Split `bundle_length` bytes across the map's sources.

    `starts` are the line start offsets of the bundle text (see `line_starts`); a
    mapping on a line the bundle does not have is skipped.

    Each breakpoint owns the bytes up to the next one; the last owns the rest of the
    bundle. Bytes before the first breakpoint, and unmapped segments, go to `None`.
    The returned lengths always sum to `bundle_length`.
    """
    totals: dict[str | None, int] = {}

    def add(source: str | None, n: int) -> None:
        if n > 0:
            totals[source] = totals.get(source, 0) + n

    cursor = 0
    current: int | None = None
    for offset, src in _breakpoints(bundle_length, source_map, starts):
        add(source_map.sources[current] if current is not None else None, offset - cursor)
        cursor = max(cursor, offset)
        current = src
    add(source_map.sources[current] if current is not None else None, bundle_length - cursor)

    return [SourceBytes(source, n) for source, n in totals.items()]


def attribute_bundle(url: str, content: str, source_map: SourceMap | dict[str, Any] | str) -> BundleRecord:
    if not isinstance(source_map, SourceMap):
        source_map = decode_source_map(source_map)
    total = len(content)
    return BundleRecord(url=url, total_bytes=total, attribution=attribute(total, source_map, line_starts(content)))


def attribute_bundles(bundles: Iterable[dict[str, Any]]) -> list[BundleRecord]:
    """Attribute `{url, content, map}` bundle triples, preserving input order."""
    records: list[BundleRecord] = []
    for bundle in bundles:
        records.append(attribute_bundle(str(bundle.get("url") or ""), str(bundle.get("content") or ""), bundle.get("map") or {}))
    return records


__all__ = [
    "BundleRecord",
    "ByteAttribution",
    "SourceBytes",
    "attribute",
    "attribute_bundle",
    "attribute_bundles",
    "line_starts",
]
