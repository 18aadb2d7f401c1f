"""Weighted accumulation and ranking shared by the shift and duplication analyses."""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def accumulate(
    items: Iterable[T],
    key: Callable[[T], K],
    weight: Callable[[T], float],
    totals: dict[K, float] | None = None,
) -> dict[K, float]:
    """Fold `items` into per-key weight totals.

    The returned dict keeps first-seen key order, which `rank` relies on for ties.
    Passing `totals` continues an existing fold in place.
    """
    out: dict[K, float] = totals if totals is not None else {}
    for item in items:
        k = key(item)
        out[k] = out.get(k, 0) + weight(item)
    return out


def rank(totals: dict[K, float], limit: int | None = None) -> list[tuple[K, float]]:
    """Return `(key, total)` pairs, heaviest first; ties keep first-seen order."""
    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    if limit is not None:
        ordered = ordered[: max(0, int(limit))]
    return ordered


__all__ = ["accumulate", "rank"]
