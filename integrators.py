"""
Fixed-step integrators for the pendulum chain

Every stepper takes the current angles and angular velocities, a step size and
an ``accelerations(thetas, omegas) -> (omegas, theta_ddot)`` callable, and
returns new ``(thetas, omegas)`` arrays. Inputs are never modified.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Tuple

import numpy as np

State = Tuple[np.ndarray, np.ndarray]
Accelerations = Callable[[np.ndarray, np.ndarray], State]


class DivergenceError(FloatingPointError):
    """Raised when an acceleration evaluates to NaN."""


class Integrator(Enum):
    EULER = "euler"
    RK4 = "rk4"
    VERLET = "verlet"
    LEAPFROG = "leapfrog"

    @classmethod
    def parse(cls, value: "Integrator | str") -> "Integrator":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown integrator '{value}'. Use one of: {names}.") from None


def normalize_angle(theta):
    """Wrap angles into [-pi, pi]."""
    a = np.fmod(theta, 2.0 * np.pi)
    a = np.where(a > np.pi, a - 2.0 * np.pi, a)
    return np.where(a < -np.pi, a + 2.0 * np.pi, a)


def _checked(theta_ddot: np.ndarray) -> np.ndarray:
    if np.isnan(theta_ddot).any():
        raise DivergenceError("angular acceleration is NaN")
    return theta_ddot


def euler_step(thetas, omegas, dt: float, accelerations: Accelerations) -> State:
    """Semi-implicit Euler: the angle moves with the freshly updated velocity."""
    _, theta_ddot = accelerations(thetas, omegas)
    _checked(theta_ddot)

    new_omegas = omegas + theta_ddot * dt
    new_thetas = thetas + new_omegas * dt
    return new_thetas, new_omegas


def rk4_step(thetas, omegas, dt: float, accelerations: Accelerations) -> State:
    k1 = accelerations(thetas, omegas)
    k2 = accelerations(thetas + k1[0] * (0.5 * dt), omegas + k1[1] * (0.5 * dt))
    k3 = accelerations(thetas + k2[0] * (0.5 * dt), omegas + k2[1] * (0.5 * dt))
    k4 = accelerations(thetas + k3[0] * dt, omegas + k3[1] * dt)
    for k in (k1, k2, k3, k4):
        _checked(k[1])

    theta_deltas = (k1[0] + 2 * k2[0] + 2 * k3[0] + k4[0]) * (dt / 6.0)
    omega_deltas = (k1[1] + 2 * k2[1] + 2 * k3[1] + k4[1]) * (dt / 6.0)
    return thetas + theta_deltas, omegas + omega_deltas


def verlet_step(thetas, omegas, dt: float, accelerations: Accelerations) -> State:
    """
    Velocity Verlet.

    theta(t+dt) = theta + omega*dt + 0.5*alpha(t)*dt^2
    omega(t+dt) = omega + 0.5*(alpha(t) + alpha(t+dt))*dt
    """
    _, theta_ddot = accelerations(thetas, omegas)
    _checked(theta_ddot)

    new_thetas = thetas + omegas * dt + 0.5 * theta_ddot * dt * dt

    _, theta_ddot_new = accelerations(new_thetas, omegas)
    _checked(theta_ddot_new)

    new_omegas = omegas + 0.5 * (theta_ddot + theta_ddot_new) * dt
    return normalize_angle(new_thetas), new_omegas


def leapfrog_step(thetas, omegas, dt: float, accelerations: Accelerations) -> State:
    """Kick-drift-kick leapfrog with velocity half-steps."""
    _, theta_ddot = accelerations(thetas, omegas)
    _checked(theta_ddot)

    omegas_half = omegas + theta_ddot * (dt / 2.0)
    new_thetas = thetas + omegas_half * dt

    _, theta_ddot_new = accelerations(new_thetas, omegas_half)
    _checked(theta_ddot_new)

    new_omegas = omegas_half + theta_ddot_new * (dt / 2.0)
    return normalize_angle(new_thetas), new_omegas


STEPPERS = {
    Integrator.EULER: euler_step,
    Integrator.RK4: rk4_step,
    Integrator.VERLET: verlet_step,
    Integrator.LEAPFROG: leapfrog_step,
}


def step(integrator: Integrator, thetas, omegas, dt: float, accelerations: Accelerations) -> State:
    """Advance one sub-step with the selected integrator."""
    thetas = np.asarray(thetas, dtype=float)
    omegas = np.asarray(omegas, dtype=float)
    return STEPPERS[Integrator.parse(integrator)](thetas, omegas, dt, accelerations)
