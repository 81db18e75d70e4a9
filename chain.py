"""
Static segment parameters and per-node dynamic state of the pendulum chain
"""

from __future__ import annotations

from dataclasses import dataclass, field

from trail import Trail, TrailPoint
from vector import Vec2


@dataclass
class Rod:
    """Rigid, massless rod joining a node to the previous one (or the anchor)."""

    length: float
    mass: float
    color: int

    def update_length(self, length: float) -> None:
        self.length = length


@dataclass
class Ball:
    """
    Point mass at the end of a rod.

    ``theta`` is measured from the downward vertical and is never wrapped
    here. ``pos`` is derived from the angles and rod lengths of this node and
    every node before it; the owning ``Universe`` keeps it up to date and it
    is not meant to be set directly.
    """

    pos: Vec2
    omega: float
    theta: float
    rod: Rod
    radius: int = 10
    mass: float = 10.0
    color: int = 0xFF0000
    trail: Trail = field(default_factory=Trail, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        px: float,
        py: float,
        omega: float,
        theta: float,
        rod_length: float,
        rod_mass: float,
        rod_color: int,
        radius: int,
        mass: float,
        color: int,
    ) -> Ball:
        """Build a node from flat parameters, the way hosts hand them over."""
        return cls(
            pos=Vec2(px, py),
            omega=omega,
            theta=theta,
            rod=Rod(rod_length, rod_mass, rod_color),
            radius=radius,
            mass=mass,
            color=color,
        )

    def add_trail_point(self) -> None:
        """Sample the current position into the trail."""
        self.trail.record(self.pos, self.color)

    def get_trail(self) -> list[TrailPoint]:
        return self.trail.points()
