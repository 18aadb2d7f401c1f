"""Rectangle helpers for layout-shift geometry."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height


def normalize(raw: Sequence[float]) -> Rect:
    """Build a Rect from a trace `[x, y, width, height]` array."""
    x, y, width, height = raw
    return Rect(x=x, y=y, width=width, height=height)


def area(rect: Rect) -> float:
    return rect.width * rect.height


def overlap_area(a: Rect, b: Rect) -> float:
    # Each axis is clipped independently; a negative span means no intersection.
    width = max(0, min(a.right, b.right) - max(a.left, b.left))
    height = max(0, min(a.bottom, b.bottom) - max(a.top, b.top))
    return width * height


__all__ = ["Rect", "area", "normalize", "overlap_area"]
