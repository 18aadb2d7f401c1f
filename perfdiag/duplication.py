"""Find code shipped more than once across bundles.

Sources are compared by a canonical name: everything inside a `node_modules` package
collapses to the package, so two bundles that each inline a copy of the same library
are grouped even when they pulled in different files of it. For each group the largest
copy is treated as the one worth keeping and every other copy as waste. This is an
upper bound; versions that differ slightly are still counted as duplicates.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .attribution import BundleRecord
from .config import DEFAULT_IGNORE_THRESHOLD_BYTES
from .ranking import accumulate, rank

logger = logging.getLogger("perfdiag.duplication")

OTHER_SOURCE = "Other"
NODE_MODULES = "node_modules/"

_PACKAGE_RE = re.compile(r"^(@[^/]+/)?[^/]+")
_WEBPACK_PREFIX_RE = re.compile(r"^webpack://[^/]*/")


def should_ignore_source(source: str) -> bool:
    # Bundler runtime and externals are not shipped application code.
    if "webpack/bootstrap" in source:
        return True
    if "(webpack)/buildin" in source:
        return True
    return "external " in source


def normalize_source(source: str) -> str:
    if source.endswith("?"):
        source = source[:-1]
    idx = source.rfind(NODE_MODULES)
    if idx != -1:
        return source[idx:]
    source = _WEBPACK_PREFIX_RE.sub("", source)
    while source.startswith("./"):
        source = source[2:]
    return source


def package_name(source: str) -> str:
    """Innermost package name of a `node_modules` path, including its @scope."""
    tail = source.split(NODE_MODULES)[-1]
    match = _PACKAGE_RE.match(tail)
    return match.group(0) if match else tail


def canonical_source(source: str) -> str:
    source = normalize_source(source)
    if NODE_MODULES in source:
        return NODE_MODULES + package_name(source)
    return source


@dataclass
class DuplicateGroup:
    source: str
    urls: list[str] = field(default_factory=list)
    source_bytes: list[int] = field(default_factory=list)
    wasted_bytes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "urls": list(self.urls),
            "sourceBytes": list(self.source_bytes),
            "wastedBytes": self.wasted_bytes,
        }


@dataclass
class DuplicationResult:
    groups: list[DuplicateGroup] = field(default_factory=list)
    wasted_bytes_by_url: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "wastedBytesByUrl": dict(self.wasted_bytes_by_url),
        }


def _free_copy_index(sizes: Sequence[int]) -> int:
    """Index of the copy treated as kept: the last one holding the maximum size."""
    largest = max(sizes)
    free = 0
    for i, size in enumerate(sizes):
        if size == largest:
            free = i
    return free


def _make_group(source: str, members: Sequence[tuple[str, int]]) -> DuplicateGroup:
    sizes = [n for _url, n in members]
    wasted = sum(sizes) - max(sizes) if sizes else 0
    return DuplicateGroup(source=source, urls=[url for url, _n in members], source_bytes=sizes, wasted_bytes=wasted)


def _bytes_by_canonical_source(bundle: BundleRecord) -> dict[str, float]:
    entries = [e for e in bundle.attribution if e.source is not None and not should_ignore_source(e.source)]
    return accumulate(entries, key=lambda e: canonical_source(e.source), weight=lambda e: e.byte_length)


def detect(
    bundles: Sequence[BundleRecord], ignore_threshold_bytes: int = DEFAULT_IGNORE_THRESHOLD_BYTES
) -> DuplicationResult:
    members_by_source: dict[str, list[tuple[str, int]]] = {}
    unattributed: list[tuple[str, int]] = []
    for bundle in bundles:
        for source, n in _bytes_by_canonical_source(bundle).items():
            members_by_source.setdefault(source, []).append((bundle.url, int(n)))
        other = bundle.unattributed_bytes()
        if other:
            unattributed.append((bundle.url, other))

    wasted_bytes_by_url: dict[str, int] = {}
    groups: list[DuplicateGroup] = []
    dropped = 0
    for source, members in members_by_source.items():
        if len(members) < 2:
            continue
        group = _make_group(source, members)
        free = _free_copy_index(group.source_bytes)
        for i, (url, n) in enumerate(members):
            if i != free:
                wasted_bytes_by_url[url] = wasted_bytes_by_url.get(url, 0) + n
        if group.wasted_bytes < ignore_threshold_bytes:
            dropped += 1
            continue
        groups.append(group)

    groups.append(_make_group(OTHER_SOURCE, unattributed))
    order = rank({i: g.wasted_bytes for i, g in enumerate(groups)})
    groups = [groups[i] for i, _wasted in order]

    if dropped:
        logger.debug("dropped %d duplicate groups below %d bytes", dropped, ignore_threshold_bytes)
    logger.info(
        "duplicate detection: bundles=%d groups=%d wasted=%d",
        len(bundles),
        len(groups) - 1,
        sum(wasted_bytes_by_url.values()),
    )
    return DuplicationResult(groups=groups, wasted_bytes_by_url=wasted_bytes_by_url)


__all__ = [
    "DuplicateGroup",
    "DuplicationResult",
    "OTHER_SOURCE",
    "canonical_source",
    "detect",
    "normalize_source",
    "package_name",
    "should_ignore_source",
]
