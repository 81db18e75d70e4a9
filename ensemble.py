"""
N-Pendulum Ensemble
Run many chains with slightly different initial conditions to show chaos
"""

from __future__ import annotations

import multiprocessing as mp
import time
from pathlib import Path
from typing import Callable, Iterable, Tuple

import dill
import numpy as np
from scipy.integrate import solve_ivp

from energy import total_energy
from equations import build_equations_of_motion, calculate_accelerations
from integrators import Integrator, step
from universe import Universe

REFERENCE = "reference"

SOLVER_KWARGS = dict(
    method='DOP853',  # High-order Runge-Kutta method (similar to ode89)
    rtol=1e-10,
    atol=1e-12,
    max_step=5e-3,
)

_worker_runner = None


def _worker_init(runner_blob: bytes) -> None:
    """Initializer for worker processes; restores the per-instance runner."""
    global _worker_runner
    _worker_runner = dill.loads(runner_blob)


def _worker_simulate_single(index: int) -> Tuple[int, np.ndarray]:
    """Integrate a single chain instance inside a worker process."""
    if _worker_runner is None:
        raise RuntimeError("Worker runner not initialized")
    return index, _worker_runner(index)


def _accumulate_positions(theta: np.ndarray, lengths: np.ndarray, x: np.ndarray, y: np.ndarray, idx: int) -> None:
    """Convert angular positions to Cartesian coordinates (y up) for a single instance."""
    for k in range(theta.shape[1]):
        x[:, k + 1, idx] = x[:, k, idx] + lengths[k] * np.sin(theta[:, k])
        y[:, k + 1, idx] = y[:, k, idx] - lengths[k] * np.cos(theta[:, k])


def build_chain(
    initial_angles,
    length: float = 1.0,
    mass: float = 1.0,
    gravity: float = 9.81,
    integrator: Integrator | str = Integrator.RK4,
) -> Universe:
    """
    Universe holding a uniform chain, set up to run in real time:
    ``advance(dt)`` covers ``dt`` seconds.
    """

    universe = Universe()
    while universe.get_ball_count():
        universe.remove_ball()

    universe.max_balls = max(universe.max_balls, len(initial_angles))
    universe.gravity = gravity
    universe.integrator = integrator
    universe.speed = 0.5
    universe.show_trails = False
    for theta in initial_angles:
        universe.add_ball(float(theta), length=length, rod_mass=mass, mass=mass)
    return universe


def _make_runner(
    N: int,
    M: int,
    perturbation: float,
    t: np.ndarray,
    integrator: str,
    gravity: float,
) -> Callable[[int], np.ndarray]:
    """Closure mapping an instance index to its angle history, shape (Frame, N)."""

    def run(index: int) -> np.ndarray:
        initial_angles = np.ones(N) * np.pi / 2 - index / M * perturbation

        if integrator == REFERENCE:
            equations_of_motion = build_equations_of_motion(np.ones(N), np.ones(N), gravity)
            u0 = np.concatenate([initial_angles, np.zeros(N)])
            sol = solve_ivp(equations_of_motion, [t[0], t[-1]], u0, t_eval=t, **SOLVER_KWARGS)
            if not sol.success:
                raise RuntimeError(f"Integration failed for instance {index}: {sol.message}")
            return sol.y[:N].T

        universe = build_chain(initial_angles, gravity=gravity, integrator=integrator)
        theta = np.empty((len(t), N))
        theta[0] = initial_angles
        for frame in range(1, len(t)):
            universe.advance(t[frame] - t[frame - 1])
            if universe.diverged:
                raise RuntimeError(f"Integration diverged for instance {index} at t={t[frame]:.3f}")
            theta[frame], _ = universe.state()
        return theta

    return run


def simulate_ensemble(
    N: int = 3,
    T: float = 100,
    M: int = 100,
    perturbation: float = 1e-8,
    integrator: str = "rk4",
    fps: int = 60,
    gravity: float = 9.81,
    processes: int | None = None,
    output_path: str | Path | None = 'simulation_results.npz',
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Simulate M instances of an N-link chain with slightly different initial conditions

    Parameters:
    -----------
    N : int
        Number of pendulum segments (unit length, unit mass)
    T : float
        Total simulation time
    M : int
        Number of pendulum instances
    perturbation : float
        Spread of the initial angles across instances
    integrator : str
        'euler', 'rk4', 'verlet', 'leapfrog' (stepped through Universe.advance)
        or 'reference' (scipy solve_ivp, DOP853)
    fps : int
        Frames per simulated second
    processes : int | None
        Number of worker processes to use (default: cpu_count, falls back to sequential when <=1)
    output_path : str | Path | None
        Where to save the results with numpy.savez; None skips saving

    Returns:
    --------
    t : array
        Time points
    x : array
        X positions of the anchor and all masses (shape: Frame x N+1 x M)
    y : array
        Y positions, pointing up (shape: Frame x N+1 x M)
    """

    if integrator != REFERENCE:
        integrator = Integrator.parse(integrator).value

    Frame = max(2, int(T * fps))
    t = np.linspace(0, T, Frame)
    lengths = np.ones(N)

    # Initialize position arrays
    x = np.zeros((Frame, N+1, M))
    y = np.zeros((Frame, N+1, M))

    print(f"Simulating {M} pendulum instances with N={N} ({integrator})...")
    tic = time.time()

    runner = _make_runner(N, M, perturbation, t, integrator, gravity)

    cpu_total = mp.cpu_count() or 1
    processes = processes or min(M, cpu_total)
    processes = max(1, min(processes, M))

    if processes == 1:
        for ii in range(M):
            if (ii + 1) % 10 == 0 or ii + 1 == M:
                print(f"Progress: {ii+1}/{M}")
            try:
                theta = runner(ii)
            except RuntimeError as err:
                print(f"Warning: {err}")
                continue
            _accumulate_positions(theta, lengths, x, y, ii)
    else:
        print(f"Using {processes} parallel workers...")
        runner_blob = dill.dumps(runner, recurse=True)
        ctx = mp.get_context("spawn")
        with ctx.Pool(
            processes=processes,
            initializer=_worker_init,
            initargs=(runner_blob,),
        ) as pool:
            chunk_iter: Iterable[Tuple[int, np.ndarray]] = pool.imap_unordered(_worker_simulate_single, range(M))
            for completed, (idx, theta) in enumerate(chunk_iter, start=1):
                _accumulate_positions(theta, lengths, x, y, idx)
                if (completed % 10 == 0) or completed == M:
                    print(f"Progress: {completed}/{M}")

    toc = time.time()
    print(f"Simulation completed in {toc-tic:.1f} seconds")

    if output_path is not None:
        np.savez(output_path, t=t, x=x, y=y, N=N, M=M, integrator=integrator)
        print(f"Results saved to {output_path}")

    return t, x, y


def compare_integrators(
    N: int = 1,
    steps: int = 1000,
    dt: float = 0.01,
    theta0: float = np.pi / 3,
    length: float = 1.0,
    mass: float = 1.0,
    gravity: float = 9.81,
) -> dict[str, float]:
    """
    Largest absolute deviation of the total energy from its starting value
    over ``steps`` fixed steps, for every integrator.
    """

    lengths = np.full(N, length)
    masses = np.full(N, mass)

    def accelerations(th, om):
        return calculate_accelerations(th, om, lengths, masses, gravity)

    drift = {}
    for integrator in Integrator:
        thetas = np.full(N, theta0, dtype=float)
        omegas = np.zeros(N)
        e0 = total_energy(thetas, omegas, lengths, masses, gravity)
        worst = 0.0
        for _ in range(steps):
            thetas, omegas = step(integrator, thetas, omegas, dt, accelerations)
            e = total_energy(thetas, omegas, lengths, masses, gravity)
            worst = max(worst, abs(e - e0))
        drift[integrator.value] = worst
    return drift


if __name__ == '__main__':
    # Run simulation
    t, x, y = simulate_ensemble(N=3, T=20, M=20)
