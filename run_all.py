"""
Run complete N-Pendulum simulation pipeline
"""

import animator
import ensemble


def main():
    """
    Complete pipeline:
    1. Compare integrator energy drift
    2. Run ensemble simulation
    3. Create animation/video
    """

    print("=" * 60)
    print("N-PENDULUM CHAOTIC SIMULATION")
    print("=" * 60)
    print()

    # Configuration
    N = 3               # Number of pendulum segments
    T = 20              # Simulation time (seconds)
    M = 20              # Number of pendulum instances
    perturbation = 1e-6  # Initial condition perturbation
    integrator = "rk4"  # euler, rk4, verlet, leapfrog or reference
    save_video = False

    print(f"Configuration:")
    print(f"  N (segments): {N}")
    print(f"  Duration: {T} seconds")
    print(f"  Number of instances: {M}")
    print(f"  Perturbation: {perturbation:.2e}")
    print(f"  Integrator: {integrator}")
    print()

    # Step 1: Energy drift
    print("STEP 1: Comparing integrator energy drift...")
    print("-" * 60)
    for name, drift in ensemble.compare_integrators(N=N).items():
        print(f"  {name:<10} max |dE| = {drift:.3e}")
    print()

    # Step 2: Run simulation
    print("STEP 2: Running numerical simulation...")
    print("-" * 60)
    ensemble.simulate_ensemble(N=N, T=T, M=M, perturbation=perturbation, integrator=integrator)
    print()

    # Step 3: Create animation
    print("STEP 3: Creating animation...")
    print("-" * 60)
    animator.animate_pendulum(
        save_video=save_video,
        video_filename=f'{N}_pendulum_{M}_instances.mp4',
    )
    print()

    print("=" * 60)
    print("COMPLETE!")
    print("=" * 60)


if __name__ == '__main__':
    main()
