import math

import numpy as np
import pytest

import universe as universe_module
from integrators import Integrator
from universe import (
    DEFAULT_LENGTH,
    PALETTE,
    STEP_OK,
    STEP_SKIPPED,
    Universe,
)
from trail import TRAIL_LENGTH


def assert_positions_chained(u):
    x, y = 0.0, 0.0
    for ball in u.get_balls():
        x += ball.rod.length * math.sin(ball.theta)
        y += ball.rod.length * math.cos(ball.theta)
        assert ball.pos.x == pytest.approx(x, abs=1e-9)
        assert ball.pos.y == pytest.approx(y, abs=1e-9)


def snapshot(u):
    thetas, omegas = u.state()
    positions = [ball.pos.as_tuple() for ball in u.get_balls()]
    return thetas, omegas, positions


def test_defaults():
    u = Universe()
    assert u.get_ball_count() == 2
    assert u.gravity == 9.8
    assert u.integrator is Integrator.EULER
    assert u.speed == 0.05
    assert u.mass_calculation is True
    assert u.show_trails is True
    assert u.is_paused is False
    assert u.max_balls == 100
    assert u.limit_total_energy is False

    first, second = u.get_balls()
    assert first.theta == pytest.approx(math.pi / 2)
    assert first.color == 0xFF0000
    assert second.color == 0x0000FF
    assert first.pos.x == pytest.approx(100.0)
    assert second.pos.x == pytest.approx(200.0)
    assert second.pos.y == pytest.approx(0.0, abs=1e-9)
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_default_chain_single_frame():
    u = Universe()
    status = u.advance(1 / 60)

    assert status == STEP_OK
    assert u.get_ball(0).theta != math.pi / 2
    assert_positions_chained(u)


def test_default_chain_both_links_swing():
    # released horizontal, the outer link starts with zero angular acceleration
    u = Universe()
    u.speed = 0.5  # one frame covers 1/60 s
    for _ in range(60):
        assert u.advance(1 / 60) == STEP_OK
    for ball in u.get_balls():
        assert ball.theta != pytest.approx(math.pi / 2, abs=1e-9)
    assert_positions_chained(u)


@pytest.mark.parametrize("integrator", list(Integrator))
def test_advance_every_integrator_keeps_positions_chained(integrator):
    u = Universe()
    u.integrator = integrator
    u.add_ball_simple(0.3)
    for _ in range(5):
        assert u.advance(1 / 60) == STEP_OK
    assert_positions_chained(u)


@pytest.mark.parametrize("integrator", list(Integrator))
def test_zero_dt_is_identity(integrator):
    u = Universe()
    u.integrator = integrator
    u.update_ball_omega(1, 0.7)
    thetas, omegas, positions = snapshot(u)

    assert u.advance(0.0) == STEP_OK

    new_thetas, new_omegas, new_positions = snapshot(u)
    np.testing.assert_allclose(new_thetas, thetas)
    np.testing.assert_allclose(new_omegas, omegas)
    np.testing.assert_allclose(new_positions, positions, atol=1e-9)


def test_paused_is_a_no_op():
    u = Universe()
    u.is_paused = True
    thetas, omegas, positions = snapshot(u)

    assert u.advance(10.0) == STEP_SKIPPED

    assert not u.diverged
    new_thetas, new_omegas, new_positions = snapshot(u)
    np.testing.assert_array_equal(new_thetas, thetas)
    np.testing.assert_array_equal(new_omegas, omegas)
    assert new_positions == positions
    assert all(len(trail) == 0 for trail in u.get_trails())


def test_empty_chain_is_a_no_op():
    u = Universe()
    u.remove_ball()
    u.remove_ball()
    u.remove_ball()
    assert u.get_ball_count() == 0
    assert u.advance(1 / 60) == STEP_SKIPPED
    assert not u.diverged


def test_nan_halts_before_mutating():
    u = Universe()
    u.gravity = float("nan")
    thetas, omegas, _ = snapshot(u)

    assert u.advance(1 / 60) == STEP_SKIPPED

    assert u.diverged
    new_thetas, new_omegas, _ = snapshot(u)
    np.testing.assert_array_equal(new_thetas, thetas)
    np.testing.assert_array_equal(new_omegas, omegas)
    assert all(len(trail) == 0 for trail in u.get_trails())


def test_nan_mid_frame_keeps_earlier_sub_steps(monkeypatch):
    calls = []
    real = universe_module.calculate_accelerations

    def failing_later(*args):
        calls.append(1)
        omegas, theta_ddot = real(*args)
        if len(calls) > 2:
            theta_ddot = np.full_like(theta_ddot, np.nan)
        return omegas, theta_ddot

    monkeypatch.setattr(universe_module, "calculate_accelerations", failing_later)

    u = Universe()
    assert u.advance(1 / 60) == STEP_SKIPPED
    assert u.diverged
    thetas, _ = u.state()
    assert thetas[0] != math.pi / 2
    assert_positions_chained(u)


def test_diverged_flag_clears_on_next_call():
    u = Universe()
    u.gravity = float("nan")
    u.advance(1 / 60)
    assert u.diverged
    u.gravity = 9.8
    assert u.advance(1 / 60) == STEP_OK
    assert not u.diverged


def test_trails_are_capped_and_fifo():
    u = Universe()
    history = []
    for _ in range(TRAIL_LENGTH + 10):
        assert u.advance(1 / 60) == STEP_OK
        history.append([ball.pos.as_tuple() for ball in u.get_balls()])

    trails = u.get_trails()
    assert len(trails) == 2
    for index, trail in enumerate(trails):
        assert len(trail) == TRAIL_LENGTH
        assert trail[0].pos.as_tuple() == history[10][index]
        assert trail[-1].pos.as_tuple() == history[-1][index]


def test_trails_disabled():
    u = Universe()
    u.show_trails = False
    u.advance(1 / 60)
    assert u.get_trails() == [[], []]

    u.toggle_show_trails()
    assert u.show_trails
    assert all(len(trail) == 0 for trail in u.get_trails())


def test_add_ball_simple_chains_from_last_ball():
    u = Universe()
    second = u.get_ball(1)
    third = u.add_ball_simple(0.0)

    assert u.get_ball_count() == 3
    assert third.pos.x == pytest.approx(second.pos.x)
    assert third.pos.y == pytest.approx(second.pos.y + DEFAULT_LENGTH)
    assert third.omega == 0.0
    assert third.mass == 10.0
    assert third.color == PALETTE[2]
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_add_ball_with_explicit_parameters():
    u = Universe()
    ball = u.add_ball(0.5, omega=1.0, length=50.0, rod_mass=2.0, radius=4, mass=3.0, color=0x123456)
    assert ball is u.get_ball(2)
    assert ball.rod.length == 50.0
    assert ball.rod.mass == 2.0
    assert ball.radius == 4
    assert ball.color == 0x123456
    assert_positions_chained(u)
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_remove_last_ball_leaves_remaining_ball_untouched():
    u = Universe()
    first = u.get_ball(0)
    before = (first.theta, first.omega, first.pos.as_tuple(), first.mass, first.rod.length)

    u.remove_ball()

    assert u.get_ball_count() == 1
    after = u.get_ball(0)
    assert after is first
    assert (after.theta, after.omega, after.pos.as_tuple(), after.mass, after.rod.length) == before
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_theta_edit_recomputes_downstream_positions():
    u = Universe()
    u.add_ball_simple(0.2)
    u.update_ball_theta(0, 0.0)
    assert u.get_ball(0).pos.as_tuple() == pytest.approx((0.0, 100.0))
    assert_positions_chained(u)
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_length_edit_recomputes_positions_and_energy():
    u = Universe()
    u.update_ball_length(0, 40.0)
    assert u.get_ball(0).rod.length == 40.0
    assert u.get_ball(1).pos.x == pytest.approx(140.0)
    assert_positions_chained(u)
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_mass_and_omega_edits_rebaseline_energy():
    u = Universe()
    u.update_ball_omega(0, 0.5)
    assert u.get_ball(0).omega == 0.5
    assert u.initial_energy == pytest.approx(u.total_energy())
    assert u.initial_energy > 0

    u.update_ball_theta(1, 0.0)
    u.update_ball_mass(1, 30.0)
    assert u.get_ball(1).mass == 30.0
    assert u.initial_energy == pytest.approx(u.total_energy())


def test_color_and_radius_edits_keep_energy_budget():
    u = Universe()
    u.update_ball_omega(0, 0.5)
    budget = u.initial_energy
    u.update_ball_color(0, 0x00FF00)
    u.update_ball_radius(0, 25)
    assert u.get_ball(0).color == 0x00FF00
    assert u.get_ball(0).radius == 25
    assert u.initial_energy == budget


@pytest.mark.parametrize("index", [-1, 2, 50])
def test_out_of_range_edits_are_ignored(index):
    u = Universe()
    thetas, omegas, positions = snapshot(u)
    u.update_ball_theta(index, 1.0)
    u.update_ball_length(index, 1.0)
    u.update_ball_mass(index, 1.0)
    u.update_ball_omega(index, 1.0)
    u.update_ball_color(index, 0x00FF00)
    u.update_ball_radius(index, 1)
    u.aim_ball(index, 0.0, 0.0)

    new_thetas, new_omegas, new_positions = snapshot(u)
    np.testing.assert_array_equal(new_thetas, thetas)
    np.testing.assert_array_equal(new_omegas, omegas)
    assert new_positions == positions
    assert u.get_ball(index) is None


def test_aim_ball_points_rod_at_target():
    u = Universe()
    u.aim_ball(0, 0.0, 50.0)
    assert u.get_ball(0).theta == pytest.approx(0.0)

    anchor = u.get_ball(0).pos
    u.aim_ball(1, anchor.x - 10.0, anchor.y)
    assert u.get_ball(1).theta == pytest.approx(-math.pi / 2)
    assert_positions_chained(u)


def test_advance_truncates_to_max_balls():
    u = Universe()
    for _ in range(3):
        u.add_ball_simple(0.0)
    u.max_balls = 2
    assert u.advance(1 / 60) == STEP_OK
    assert u.get_ball_count() == 2
    assert len(u.get_trails()) == 2


def test_energy_limit_bounds_kinetic_energy():
    u = Universe()
    u.add_ball_simple(1.0)
    u.limit_total_energy = True
    for _ in range(5):
        u.advance(50.0)
        ceiling = u.initial_energy - u.potential_energy()
        if ceiling >= 0:
            assert u.kinetic_energy() <= ceiling * (1 + 1e-9) + 1e-9


def test_single_pendulum_energy_is_nearly_conserved():
    u = Universe()
    u.remove_ball()
    u.integrator = "rk4"
    u.show_trails = False
    start = u.total_energy()
    for _ in range(120):
        assert u.advance(1 / 60) == STEP_OK
    scale = u.get_ball(0).mass * u.gravity * u.get_ball(0).rod.length
    assert abs(u.total_energy() - start) < 1e-6 * scale


def test_mass_calculation_toggle_uses_default_mass():
    u = Universe()
    u.update_ball_mass(0, 1000.0)
    np.testing.assert_allclose(u.masses(), [1000.0, 10.0])
    u.toggle_mass_calculation()
    assert not u.mass_calculation
    np.testing.assert_allclose(u.masses(), [10.0, 10.0])


def test_parameter_setters_and_toggles():
    u = Universe()
    u.integrator = "Verlet"
    assert u.integrator is Integrator.VERLET
    with pytest.raises(ValueError):
        u.integrator = "bogus"

    u.toggle_limit_total_energy()
    assert u.limit_total_energy
    u.toggle_limit_total_energy()
    assert not u.limit_total_energy


def test_reset_restores_defaults():
    u = Universe()
    u.add_ball_simple(0.0)
    u.gravity = 1.0
    u.speed = 0.2
    u.integrator = Integrator.RK4
    u.advance(1 / 60)

    u.reset()

    assert u.get_ball_count() == 2
    assert u.gravity == 9.8
    assert u.speed == 0.05
    assert u.integrator is Integrator.EULER
    assert all(len(trail) == 0 for trail in u.get_trails())
    assert u.get_ball(0).theta == pytest.approx(math.pi / 2)


def test_time_step_alias():
    u = Universe()
    assert u.time_step(1 / 60) == STEP_OK
    assert len(u) == 2
