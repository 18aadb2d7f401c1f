"""Decode revision 3 source maps into per-position source mappings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .errors import InvalidSourceMapError

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_VALUES = {ch: i for i, ch in enumerate(_BASE64)}
_VLQ_CONTINUATION = 0x20
_VLQ_MASK = 0x1F


class Mapping(NamedTuple):
    line: int
    column: int
    source_index: int | None


@dataclass
class SourceMap:
    sources: list[str | None] = field(default_factory=list)
    mappings: list[Mapping] = field(default_factory=list)


def decode_vlq(segment: str) -> list[int]:
    values: list[int] = []
    value = 0
    shift = 0
    for ch in segment:
        digit = _BASE64_VALUES.get(ch)
        if digit is None:
            raise InvalidSourceMapError(reason=f"Invalid base64 VLQ character {ch!r}", details={"segment": segment})
        value += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += 5
            continue
        negative = value & 1
        value >>= 1
        values.append(-value if negative else value)
        value = 0
        shift = 0
    if shift:
        raise InvalidSourceMapError(reason="Truncated base64 VLQ segment", details={"segment": segment})
    return values


def decode_mappings(encoded: str, *, line_offset: int = 0, column_offset: int = 0, source_offset: int = 0) -> list[Mapping]:
    """Decode a `mappings` string into absolute (line, column, source) breakpoints.

    Generated columns reset on every line; the source index is relative across the
    whole string. Single-field segments mark generated code with no source.
    """
    out: list[Mapping] = []
    source_index = 0
    for line_no, line in enumerate(encoded.split(";")):
        column = 0
        for segment in line.split(","):
            if not segment:
                continue
            fields = decode_vlq(segment)
            if len(fields) not in (1, 4, 5):
                raise InvalidSourceMapError(
                    reason=f"Mapping segment has {len(fields)} fields",
                    details={"line": line_no, "segment": segment},
                )
            column += fields[0]
            abs_column = column + (column_offset if line_no == 0 else 0)
            if len(fields) == 1:
                out.append(Mapping(line_no + line_offset, abs_column, None))
                continue
            source_index += fields[1]
            out.append(Mapping(line_no + line_offset, abs_column, source_index + source_offset))
    return out


def _join_root(root: str, source: str) -> str:
    if not root or root.endswith("/"):
        return root + source
    return root + "/" + source


def _sources_of(raw: dict[str, Any]) -> list[str | None]:
    sources = raw.get("sources")
    if sources is None:
        return []
    if not isinstance(sources, list):
        raise InvalidSourceMapError(reason="'sources' must be a list")
    root = raw.get("sourceRoot") if isinstance(raw.get("sourceRoot"), str) else ""
    # A null entry names no file; its bytes stay unattributed.
    return [_join_root(root, s) if isinstance(s, str) else None for s in sources]


def decode_source_map(raw: dict[str, Any] | str) -> SourceMap:
    """Decode a raw source map (JSON text or parsed dict), including indexed maps with sections."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise InvalidSourceMapError(reason=f"Source map is not JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise InvalidSourceMapError(reason="Source map must be a JSON object")

    version = raw.get("version")
    if version is not None and version != 3:
        raise InvalidSourceMapError(reason=f"Unsupported source map version {version!r}")

    sections = raw.get("sections")
    if isinstance(sections, list):
        out = SourceMap()
        for section in sections:
            if not isinstance(section, dict) or not isinstance(section.get("map"), dict):
                raise InvalidSourceMapError(reason="Indexed source map section without an inline map")
            offset = section.get("offset") if isinstance(section.get("offset"), dict) else {}
            inner = section["map"]
            encoded = inner.get("mappings") if isinstance(inner.get("mappings"), str) else ""
            out.mappings.extend(
                decode_mappings(
                    encoded,
                    line_offset=int(offset.get("line") or 0),
                    column_offset=int(offset.get("column") or 0),
                    source_offset=len(out.sources),
                )
            )
            out.sources.extend(_sources_of(inner))
        return out

    encoded = raw.get("mappings")
    if encoded is None:
        encoded = ""
    if not isinstance(encoded, str):
        raise InvalidSourceMapError(reason="'mappings' must be a string")
    return SourceMap(sources=_sources_of(raw), mappings=decode_mappings(encoded))


__all__ = ["Mapping", "SourceMap", "decode_mappings", "decode_source_map", "decode_vlq"]
