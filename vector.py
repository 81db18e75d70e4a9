"""
2D vector used for node positions and trail samples
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class Vec2:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, m: float) -> Vec2:
        return Vec2(self.x * m, self.y * m)

    __rmul__ = __mul__

    def __truediv__(self, m: float) -> Vec2:
        return Vec2(self.x / m, self.y / m)

    def __iadd__(self, other: Vec2) -> Vec2:
        self.x += other.x
        self.y += other.y
        return self

    def __itruediv__(self, m: float) -> Vec2:
        self.divide(m)
        return self

    def divide(self, n: float) -> None:
        """Scale the vector down in place."""
        self.x /= n
        self.y /= n

    def distance_to(self, other: Vec2) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def copy(self) -> Vec2:
        return Vec2(self.x, self.y)

    def as_tuple(self) -> tuple[float, float]:
        return self.x, self.y
