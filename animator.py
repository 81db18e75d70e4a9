"""
N-Pendulum Animation
Play back ensemble results, or drive a Universe live, with matplotlib
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation, FFMpegWriter

from universe import Universe


def color_to_hex(color: int) -> str:
    """0xRRGGBB integer to a matplotlib color string."""
    return f"#{color & 0xFFFFFF:06x}"


def _dark_axes(axis_limit: float, dpi: int = 100):
    fig = plt.figure(figsize=(16, 9), dpi=dpi, facecolor='black')
    ax = fig.add_subplot(111)
    ax.set_facecolor('black')
    ax.set_aspect('equal')
    ax.axis('off')
    ax.set_xlim(-axis_limit, axis_limit)
    ax.set_ylim(-axis_limit, 0.25 * axis_limit)
    return fig, ax


def animate_pendulum(
    results_path: str | Path = 'simulation_results.npz',
    save_video: bool = True,
    video_filename: str = 'pendulum_animation.mp4',
    playback_speed: float = 1.0,
    backend: str = 'matplotlib',
):
    """
    Create animation of an ensemble simulation.

    Parameters
    ----------
    results_path : str | Path
        File written by ensemble.simulate_ensemble.
    save_video : bool
        Whether to save animation as video.
    video_filename : str
        Output video filename.
    playback_speed : float
        Relative playback multiplier (>1 faster, <1 slower).
    backend : str
        Only 'matplotlib' is supported.
    """

    print("Loading simulation results...")
    try:
        data = np.load(results_path)
        t = data['t']
        x = data['x']
        y = data['y']
        N = int(data['N'])
        M = int(data['M'])
    except FileNotFoundError:
        print(f"Error: {results_path} not found. Please run ensemble.py first.")
        return None

    backend = (backend or 'matplotlib').lower()
    if backend != 'matplotlib':
        raise ValueError(f"Unknown backend '{backend}'. Use 'matplotlib'.")

    Frame = len(t)
    axis_limit = max(1.0, N * 1.2)

    playback_speed = max(playback_speed, 1e-3)
    base_fps = 60
    render_fps = max(1, int(round(base_fps * playback_speed)))
    actual_speed = render_fps / base_fps
    print(f"Loaded {Frame} frames for {M} pendulums with {N} segments")

    dpi = 100
    fig, ax = _dark_axes(axis_limit, dpi)

    # Initialize plot objects
    origin_point, = ax.plot([0], [0], 'o', markersize=6, color='red', zorder=3)
    pendulum_points = []  # Points for the masses
    pendulum_strings = []  # Lines for the rods

    for _ in range(M):
        point, = ax.plot([], [], 'o', markersize=8, color='yellow', zorder=2)
        string, = ax.plot([], [], '-', linewidth=1, color='white', zorder=1)
        pendulum_points.append(point)
        pendulum_strings.append(string)

    def init():
        """Initialize animation"""
        origin_point.set_data([0], [0])
        for point in pendulum_points:
            point.set_data([], [])
        for string in pendulum_strings:
            string.set_data([], [])
        return [origin_point] + pendulum_points + pendulum_strings

    def update(frame):
        """Update animation frame"""
        for k in range(M):
            pendulum_points[k].set_data(x[frame, 1:, k], y[frame, 1:, k])
            pendulum_strings[k].set_data(x[frame, :, k], y[frame, :, k])

        if (frame + 1) % 30 == 0:
            progress = 100 * (frame + 1) / Frame
            print(f'Animating: {progress:.1f}%', end='\r')

        return [origin_point] + pendulum_points + pendulum_strings

    print(f"Creating animation at {render_fps} fps (~{actual_speed:.2f}x speed)...")
    anim = FuncAnimation(
        fig,
        update,
        frames=Frame,
        init_func=init,
        blit=True,
        interval=1000 / render_fps,
    )

    if save_video:
        print(f"Saving video to {video_filename}...")
        writer = FFMpegWriter(fps=render_fps, bitrate=5000, extra_args=['-vcodec', 'libx264'])
        anim.save(video_filename, writer=writer, dpi=dpi)
        print("Video saved successfully!")
    else:
        print("Displaying animation (close window to exit)...")
        plt.show()

    plt.close(fig)
    return anim


def chain_coordinates(universe: Universe) -> tuple[np.ndarray, np.ndarray]:
    """Rod polyline from the anchor through every ball, with y pointing up."""
    balls = universe.get_balls()
    xs = np.array([0.0] + [ball.pos.x for ball in balls])
    ys = np.array([0.0] + [-ball.pos.y for ball in balls])
    return xs, ys


def setup_universe_axes(ax, universe: Universe) -> dict:
    """Create the artists drawn by draw_universe."""
    rods, = ax.plot([], [], '-', linewidth=2, color='white', zorder=1)
    balls = ax.scatter([], [], zorder=2)
    trails = [
        ax.plot([], [], '-', linewidth=1, alpha=0.6, color=color_to_hex(ball.color), zorder=0)[0]
        for ball in universe.get_balls()
    ]
    return {"rods": rods, "balls": balls, "trails": trails}


def draw_universe(universe: Universe, artists: dict) -> list:
    """Push the current chain state into the artists; returns the changed artists."""
    xs, ys = chain_coordinates(universe)
    artists["rods"].set_data(xs, ys)

    balls = universe.get_balls()
    artists["balls"].set_offsets(np.column_stack([xs[1:], ys[1:]]) if balls else np.empty((0, 2)))
    artists["balls"].set_sizes([ball.radius ** 2 for ball in balls])
    artists["balls"].set_color([color_to_hex(ball.color) for ball in balls])

    for line, trail in zip(artists["trails"], universe.get_trails()):
        line.set_data([p.pos.x for p in trail], [-p.pos.y for p in trail])

    return [artists["rods"], artists["balls"], *artists["trails"]]


def animate_universe(
    universe: Universe,
    frames: int = 600,
    fps: int = 60,
    save_video: bool = False,
    video_filename: str = 'universe.mp4',
    show: bool = True,
):
    """
    Drive ``universe.advance(1/fps)`` once per frame and draw the chain.

    Trails are only drawn for the balls present when the animation starts.
    """

    reach = float(np.sum(universe.lengths())) if universe.get_ball_count() else 1.0
    axis_limit = max(1.0, reach * 1.2)
    fig, ax = _dark_axes(axis_limit)
    ax.set_ylim(-axis_limit, axis_limit)
    ax.plot([0], [0], 'o', markersize=6, color='red', zorder=3)
    artists = setup_universe_axes(ax, universe)

    def update(frame):
        """Step the simulation and redraw"""
        universe.advance(1.0 / fps)
        if universe.diverged:
            print(f"Warning: simulation diverged at frame {frame}")
        return draw_universe(universe, artists)

    anim = FuncAnimation(fig, update, frames=frames, blit=True, interval=1000 / fps)

    if save_video:
        print(f"Saving video to {video_filename}...")
        writer = FFMpegWriter(fps=fps, bitrate=5000, extra_args=['-vcodec', 'libx264'])
        anim.save(video_filename, writer=writer)
        print("Video saved successfully!")
        plt.close(fig)
    elif show:
        plt.show()
        plt.close(fig)
    return anim


if __name__ == '__main__':
    # Create animation and save as video
    animate_pendulum(save_video=True, video_filename='triple_pendulum_100.mp4')
