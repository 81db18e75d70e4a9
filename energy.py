"""
Mechanical energy of the chain and the kinetic energy clamp

Screen coordinates: +y points down, so heights are cumulative
``L * cos(theta)`` and potential energy is negative below the anchor.
"""

from __future__ import annotations

import numpy as np


def potential_energy(thetas, lengths, masses, gravity: float) -> float:
    thetas = np.asarray(thetas, dtype=float)
    y = np.cumsum(np.asarray(lengths, dtype=float) * np.cos(thetas))
    return float(-np.sum(np.asarray(masses, dtype=float) * gravity * y))


def kinetic_energy(thetas, omegas, lengths, masses) -> float:
    thetas = np.asarray(thetas, dtype=float)
    speed = np.asarray(lengths, dtype=float) * np.asarray(omegas, dtype=float)
    vx = np.cumsum(speed * np.cos(thetas))
    vy = np.cumsum(-speed * np.sin(thetas))
    return float(np.sum(0.5 * np.asarray(masses, dtype=float) * (vx * vx + vy * vy)))


def total_energy(thetas, omegas, lengths, masses, gravity: float) -> float:
    return potential_energy(thetas, lengths, masses, gravity) + kinetic_energy(
        thetas, omegas, lengths, masses
    )


def clamp_omegas(thetas, omegas, lengths, masses, gravity: float, budget: float) -> np.ndarray:
    """
    Scale angular velocities down so kinetic energy fits in ``budget - U``.

    This is a soft correction for energy pumped in by large steps, not a
    constraint projection. When the ceiling is negative the configuration is
    already inconsistent and the velocities are returned unchanged.
    """

    omegas = np.array(omegas, dtype=float)
    max_kinetic = budget - potential_energy(thetas, lengths, masses, gravity)
    if max_kinetic < 0.0:
        return omegas

    current_kinetic = kinetic_energy(thetas, omegas, lengths, masses)
    if current_kinetic > max_kinetic and current_kinetic > 0.0:
        omegas *= np.sqrt(max_kinetic / current_kinetic)
    return omegas
