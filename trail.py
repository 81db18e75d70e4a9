"""
Bounded position history kept per chain node for drawing trails
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator

from vector import Vec2

TRAIL_LENGTH = 250


@dataclass
class TrailPoint:
    pos: Vec2
    color: int


class Trail:
    """FIFO of trail samples; once full, the oldest sample is dropped."""

    def __init__(self, max_points: int = TRAIL_LENGTH) -> None:
        self._points: deque[TrailPoint] = deque(maxlen=max_points)

    @property
    def max_points(self) -> int:
        return self._points.maxlen

    def record(self, pos: Vec2, color: int) -> None:
        # positions are mutated in place by the driver, keep a snapshot
        self._points.append(TrailPoint(pos.copy(), color))

    def points(self) -> list[TrailPoint]:
        return list(self._points)

    def clear(self) -> None:
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TrailPoint]:
        return iter(self._points)
