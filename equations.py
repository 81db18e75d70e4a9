"""
Equations of motion for an N-link compound pendulum
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np


def mass_sums(masses: Sequence[float]) -> np.ndarray:
    """S[k]: total mass carried at or beyond joint k."""
    masses = np.asarray(masses, dtype=float)
    return np.cumsum(masses[::-1])[::-1]


def _coupling(lengths: np.ndarray, masses: np.ndarray) -> np.ndarray:
    # S(max(i, j)) * L_i * L_j
    idx = np.arange(len(lengths))
    suffix = mass_sums(masses)
    return suffix[np.maximum.outer(idx, idx)] * np.outer(lengths, lengths)


def build_mass_matrix(thetas, lengths, masses) -> np.ndarray:
    thetas = np.asarray(thetas, dtype=float)
    coupling = _coupling(np.asarray(lengths, dtype=float), np.asarray(masses, dtype=float))
    return coupling * np.cos(thetas[:, None] - thetas[None, :])


def build_force_vector(thetas, omegas, lengths, masses, gravity: float) -> np.ndarray:
    thetas = np.asarray(thetas, dtype=float)
    omegas = np.asarray(omegas, dtype=float)
    lengths = np.asarray(lengths, dtype=float)
    masses = np.asarray(masses, dtype=float)

    coupling = _coupling(lengths, masses)
    sin_delta = np.sin(thetas[:, None] - thetas[None, :])

    centrifugal = (coupling * sin_delta) @ omegas**2
    gravity_term = gravity * mass_sums(masses) * lengths * np.sin(thetas)
    return -centrifugal - gravity_term


def calculate_accelerations(
    thetas,
    omegas,
    lengths,
    masses,
    gravity: float,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Solve M(theta) * theta_ddot = F(theta, omega) for the angular accelerations.

    Parameters
    ----------
    thetas, omegas : array_like
        Joint angles (from the downward vertical) and angular velocities.
    lengths, masses : array_like
        Rod length and point mass of every node, anchor first.
    gravity : float
        Gravitational acceleration.

    Returns
    -------
    omegas : ndarray
        Copy of the angular velocities, so the pair is the full state derivative.
    theta_ddot : ndarray
        Angular accelerations. All zeros when the mass matrix is singular.
    """

    omegas = np.array(omegas, dtype=float)
    n = len(omegas)
    if n == 0:
        return omegas, np.zeros(0)

    mass_matrix = build_mass_matrix(thetas, lengths, masses)
    rhs = build_force_vector(thetas, omegas, lengths, masses, gravity)

    try:
        theta_ddot = np.linalg.solve(mass_matrix, rhs)
    except np.linalg.LinAlgError:
        theta_ddot = np.zeros(n)

    return omegas, theta_ddot


def build_equations_of_motion(lengths, masses, gravity: float) -> Callable:
    """
    Equations of motion for a fixed chain, in the ``f(t, u)`` form used by
    ``scipy.integrate.solve_ivp``.
    """

    lengths = np.array(lengths, dtype=float)
    masses = np.array(masses, dtype=float)
    N = len(lengths)

    def equations_of_motion(t: float, u: np.ndarray) -> np.ndarray:
        """Return time derivative of state [theta, omega]."""

        theta = u[:N]
        omega = u[N:]
        omega, theta_ddot = calculate_accelerations(theta, omega, lengths, masses, gravity)
        return np.concatenate([omega, theta_ddot])

    return equations_of_motion
