"""
Simulation driver for the N-link pendulum chain

A ``Universe`` owns the ordered chain of balls (anchor at the origin, +y
pointing down) and the global parameters, and advances the chain once per host
frame. Positions are cached on each ball and recomputed eagerly after every
angle or length change; they are never set directly.
"""

from __future__ import annotations

import math

import numpy as np

import energy
from chain import Ball, Rod
from equations import calculate_accelerations
from integrators import DivergenceError, Integrator, step
from trail import TrailPoint
from vector import Vec2

DEFAULT_GRAVITY = 9.8
DEFAULT_SPEED = 1.0 / 20.0
DEFAULT_MAX_BALLS = 100
DEFAULT_MASS = 10.0
DEFAULT_LENGTH = 100.0
DEFAULT_RADIUS = 10
ROD_COLOR = 0x0F0F0F
PALETTE = (0xFF0000, 0x0000FF, 0x00FF00, 0xF0F000, 0x00F0F0, 0xF000F0)

# Sub-steps per unit of speed multiplier; large single steps blow up.
SUBSTEPS_PER_UNIT_SPEED = 50

# advance() status codes. A NaN halt also reports STEP_SKIPPED, check
# Universe.diverged to tell it apart from a paused or empty chain.
STEP_OK = 0
STEP_SKIPPED = 1


class Universe:
    def __init__(self) -> None:
        self._initialize()

    def _initialize(self) -> None:
        self._balls: list[Ball] = [
            Ball(Vec2(), 0.0, np.pi / 2, Rod(DEFAULT_LENGTH, DEFAULT_MASS, ROD_COLOR),
                 DEFAULT_RADIUS, DEFAULT_MASS, 0xFF0000),
            Ball(Vec2(), 0.0, np.pi / 2, Rod(DEFAULT_LENGTH, DEFAULT_MASS, ROD_COLOR),
                 DEFAULT_RADIUS, DEFAULT_MASS, 0x0000FF),
        ]
        self.gravity = DEFAULT_GRAVITY
        self._integrator = Integrator.EULER
        self.speed = DEFAULT_SPEED
        self.mass_calculation = True
        self.show_trails = True
        self.is_paused = False
        self.max_balls = DEFAULT_MAX_BALLS
        self.default_mass = DEFAULT_MASS
        self.limit_total_energy = False
        self.diverged = False

        self._recompute_positions()
        self.initial_energy = 0.0
        self.update_initial_energy()

    def reset(self) -> None:
        """Back to the default two-ball chain and default parameters."""
        self._initialize()

    # ----- Parameters -----
    @property
    def integrator(self) -> Integrator:
        return self._integrator

    @integrator.setter
    def integrator(self, value: Integrator | str) -> None:
        self._integrator = Integrator.parse(value)

    def toggle_mass_calculation(self) -> None:
        self.mass_calculation = not self.mass_calculation

    def toggle_show_trails(self) -> None:
        self.show_trails = not self.show_trails

    def toggle_limit_total_energy(self) -> None:
        self.limit_total_energy = not self.limit_total_energy

    # ----- State views -----
    def state(self) -> tuple[np.ndarray, np.ndarray]:
        """Current (thetas, omegas) as arrays."""
        thetas = np.array([ball.theta for ball in self._balls], dtype=float)
        omegas = np.array([ball.omega for ball in self._balls], dtype=float)
        return thetas, omegas

    def lengths(self) -> np.ndarray:
        return np.array([ball.rod.length for ball in self._balls], dtype=float)

    def masses(self) -> np.ndarray:
        """Masses seen by the physics; uniform default mass unless mass calculation is on."""
        if self.mass_calculation:
            return np.array([ball.mass for ball in self._balls], dtype=float)
        return np.full(len(self._balls), self.default_mass, dtype=float)

    def get_balls(self) -> list[Ball]:
        return list(self._balls)

    def get_ball(self, index: int) -> Ball | None:
        if 0 <= index < len(self._balls):
            return self._balls[index]
        return None

    def get_ball_count(self) -> int:
        return len(self._balls)

    def __len__(self) -> int:
        return len(self._balls)

    def get_trails(self) -> list[list[TrailPoint]]:
        if not self.show_trails:
            return [[] for _ in self._balls]
        return [ball.get_trail() for ball in self._balls]

    # ----- Energy -----
    def potential_energy(self) -> float:
        thetas, _ = self.state()
        return energy.potential_energy(thetas, self.lengths(), self.masses(), self.gravity)

    def kinetic_energy(self) -> float:
        thetas, omegas = self.state()
        return energy.kinetic_energy(thetas, omegas, self.lengths(), self.masses())

    def total_energy(self) -> float:
        return self.potential_energy() + self.kinetic_energy()

    def update_initial_energy(self) -> None:
        """Re-baseline the energy budget used by the clamp."""
        self.initial_energy = self.total_energy()

    # ----- Stepping -----
    def advance(self, dt: float) -> int:
        """
        Advance the chain by one host frame.

        The frame delta is scaled by ``2 * speed`` and split into enough
        sub-steps to keep each one small. Returns STEP_OK, or STEP_SKIPPED when
        the chain is empty, paused, or an acceleration went NaN; in the last
        case the sub-steps already taken are kept and ``diverged`` is set.
        """

        self.diverged = False
        if not self._balls or self.is_paused:
            return STEP_SKIPPED

        if len(self._balls) > self.max_balls:
            del self._balls[self.max_balls:]
            self.update_initial_energy()

        speed_multiplier = self.speed * 2.0
        steps = max(1, math.ceil(abs(speed_multiplier) * SUBSTEPS_PER_UNIT_SPEED))
        sub_dt = (dt * speed_multiplier) / steps

        for _ in range(steps):
            try:
                self._single_physics_step(sub_dt)
            except DivergenceError:
                self.diverged = True
                return STEP_SKIPPED

        # one trail sample per frame, not per sub-step
        if self.show_trails:
            for ball in self._balls:
                ball.add_trail_point()
        return STEP_OK

    time_step = advance

    def _single_physics_step(self, dt: float) -> None:
        thetas, omegas = self.state()
        lengths = self.lengths()
        masses = self.masses()
        gravity = self.gravity

        def accelerations(th, om):
            return calculate_accelerations(th, om, lengths, masses, gravity)

        new_thetas, new_omegas = step(self._integrator, thetas, omegas, dt, accelerations)

        for ball, theta, omega in zip(self._balls, new_thetas, new_omegas):
            ball.theta = float(theta)
            ball.omega = float(omega)
        self._recompute_positions()

        if self.limit_total_energy:
            clamped = energy.clamp_omegas(
                new_thetas, new_omegas, lengths, masses, gravity, self.initial_energy
            )
            for ball, omega in zip(self._balls, clamped):
                ball.omega = float(omega)

    def _recompute_positions(self, start: int = 0) -> None:
        if start == 0:
            x, y = 0.0, 0.0
        else:
            x, y = self._balls[start - 1].pos.as_tuple()

        for ball in self._balls[start:]:
            x += ball.rod.length * math.sin(ball.theta)
            y += ball.rod.length * math.cos(ball.theta)
            ball.pos = Vec2(x, y)

    # ----- Chain editing -----
    def add_ball(
        self,
        theta: float,
        omega: float = 0.0,
        length: float = DEFAULT_LENGTH,
        rod_mass: float = DEFAULT_MASS,
        rod_color: int = ROD_COLOR,
        radius: int = DEFAULT_RADIUS,
        mass: float = DEFAULT_MASS,
        color: int | None = None,
    ) -> Ball:
        """Append a ball at the tail; its position is chained from the previous ball."""
        if color is None:
            color = PALETTE[len(self._balls) % len(PALETTE)]
        ball = Ball(Vec2(), omega, theta, Rod(length, rod_mass, rod_color), radius, mass, color)
        self._balls.append(ball)
        self._recompute_positions(len(self._balls) - 1)
        self.update_initial_energy()
        return ball

    def add_ball_simple(self, theta: float, color: int | None = None) -> Ball:
        return self.add_ball(theta, color=color)

    def remove_ball(self) -> None:
        if self._balls:
            self._balls.pop()
        self.update_initial_energy()

    def update_ball_theta(self, index: int, theta: float) -> None:
        if 0 <= index < len(self._balls):
            self._balls[index].theta = theta
            self._recompute_positions(index)
            self.update_initial_energy()

    def update_ball_length(self, index: int, length: float) -> None:
        if 0 <= index < len(self._balls):
            self._balls[index].rod.update_length(length)
            self._recompute_positions(index)
            self.update_initial_energy()

    def update_ball_mass(self, index: int, mass: float) -> None:
        if 0 <= index < len(self._balls):
            self._balls[index].mass = mass
            self.update_initial_energy()

    def update_ball_omega(self, index: int, omega: float) -> None:
        if 0 <= index < len(self._balls):
            self._balls[index].omega = omega
            self.update_initial_energy()

    def update_ball_color(self, index: int, color: int) -> None:
        if 0 <= index < len(self._balls):
            self._balls[index].color = color

    def update_ball_radius(self, index: int, radius: int) -> None:
        if 0 <= index < len(self._balls):
            self._balls[index].radius = radius

    def aim_ball(self, index: int, x: float, y: float) -> None:
        """Point a ball's rod at (x, y), e.g. while it is being dragged."""
        if 0 <= index < len(self._balls):
            prev = Vec2() if index == 0 else self._balls[index - 1].pos
            self.update_ball_theta(index, math.atan2(x - prev.x, y - prev.y))
