import logging

import numpy as np
import pytest

from attraction import build_attraction_matrix
from errors import ConfigurationError
from force_law import force
from particle import ParticleSystem, initialize_field
from simulation import Simulation, integrate


def _pair(x0=-0.1, x1=0.1):
    positions = np.array([[x0, 0.0, 0.0], [x1, 0.0, 0.0]])
    velocities = np.zeros((2, 3))
    return positions, velocities


def test_same_color_pair_attracts(make_params, identity2):
    params = make_params(beta=0.1, dt=0.01)
    positions, velocities = _pair()

    _, next_vel, anomalies = integrate(positions, velocities, [0, 0], identity2, params)

    expected = force(0.2, 1.0, 0.1) * params.dt
    assert next_vel[0, 0] == pytest.approx(expected)
    assert next_vel[1, 0] == pytest.approx(-expected)
    assert next_vel[0, 0] > 0.0 > next_vel[1, 0]
    np.testing.assert_array_equal(next_vel[:, 1:], 0.0)
    assert not anomalies.any()


def test_cross_color_pair_repels(make_params, identity2):
    params = make_params(beta=0.1, dt=0.01)
    positions, velocities = _pair()

    _, next_vel, _ = integrate(positions, velocities, [0, 1], identity2, params)

    assert next_vel[0, 0] < 0.0 < next_vel[1, 0]


def test_attraction_lookup_is_self_then_other(make_params):
    # Color 0 likes color 1, color 1 dislikes color 0: both drift towards +x.
    matrix = np.array([[1.0, 1.0], [-1.0, 1.0]])
    positions, velocities = _pair()

    _, next_vel, _ = integrate(positions, velocities, [0, 1], matrix, make_params())

    assert next_vel[0, 0] > 0.0
    assert next_vel[1, 0] > 0.0


def test_close_pair_repels_regardless_of_color(make_params, identity2):
    params = make_params(beta=0.3)
    positions, velocities = _pair(-0.05, 0.05)

    _, next_vel, _ = integrate(positions, velocities, [0, 0], identity2, params)

    assert next_vel[0, 0] < 0.0 < next_vel[1, 0]


def test_pair_beyond_radius_does_not_interact(make_params, identity2):
    positions, velocities = _pair(-0.8, 0.8)

    next_pos, next_vel, _ = integrate(positions, velocities, [0, 0], identity2, make_params())

    np.testing.assert_array_equal(next_vel, 0.0)
    np.testing.assert_array_equal(next_pos, positions)


def test_inputs_are_not_modified(make_params, identity2):
    positions, velocities = _pair()
    before = positions.copy(), velocities.copy()

    integrate(positions, velocities, [0, 0], identity2, make_params())

    np.testing.assert_array_equal(positions, before[0])
    np.testing.assert_array_equal(velocities, before[1])


def test_single_particle_feels_only_friction(make_params):
    params = make_params(particle_count=1, color_count=1, friction=0.5, dt=0.001)
    particles = ParticleSystem(params)
    particles.velocities[:] = [[0.4, -0.2, 0.1]]
    sim = Simulation(particles, params)

    sim.step()
    np.testing.assert_array_equal(particles.velocities, [[0.2, -0.1, 0.05]])

    for _ in range(200):
        sim.step()
    np.testing.assert_allclose(particles.velocities, 0.0, atol=1e-12)


def test_teleport_wrap_through_integrator(make_params):
    params = make_params(particle_count=1, color_count=1, dt=0.01)
    positions = np.array([[0.999, 0.5, -0.999]])
    velocities = np.array([[10.0, 0.0, -10.0]])

    next_pos, _, _ = integrate(positions, velocities, [0], [[1.0]], params)

    assert next_pos[0, 0] == -1.0
    assert next_pos[0, 1] == 0.5
    assert next_pos[0, 2] == 1.0


def test_modulo_wrap_through_integrator(make_params):
    params = make_params(particle_count=1, color_count=1, dt=0.01, wrap_mode="modulo")
    positions = np.array([[0.999, 0.0, 0.0]])
    velocities = np.array([[10.0, 0.0, 0.0]])

    next_pos, _, _ = integrate(positions, velocities, [0], [[1.0]], params)

    assert next_pos[0, 0] == pytest.approx(-0.901)


def test_processing_order_does_not_change_result(make_params):
    params = make_params(particle_count=60, color_count=4, beta=0.3, friction=0.9)
    positions, velocities, colors, _ = initialize_field(60, 4, seed=17)
    velocities = np.random.default_rng(5).normal(scale=0.1, size=(60, 3))
    matrix = build_attraction_matrix(4, policy="random", seed=17)

    forward = integrate(positions, velocities, colors, matrix, params)
    backward = integrate(positions, velocities, colors, matrix, params, order=np.arange(60)[::-1])
    shuffled = integrate(
        positions, velocities, colors, matrix, params,
        order=np.random.default_rng(1).permutation(60)
    )

    for other in (backward, shuffled):
        np.testing.assert_array_equal(forward[0], other[0])
        np.testing.assert_array_equal(forward[1], other[1])


@pytest.mark.parametrize("order", [[0, 0], [0, 2], [1]])
def test_order_must_be_a_permutation(make_params, identity2, order):
    positions, velocities = _pair()
    with pytest.raises(ValueError):
        integrate(positions, velocities, [0, 0], identity2, make_params(), order=order)


def test_step_matches_pure_integrate(make_params):
    params = make_params(particle_count=40, color_count=3, beta=0.3, friction=0.9)
    particles = ParticleSystem(params)
    sim = Simulation(particles, params)
    positions, velocities = sim.snapshot()

    expected_pos, expected_vel, _ = integrate(
        positions, velocities, particles.colors, sim.interaction_matrix, params
    )
    sim.step()

    np.testing.assert_array_equal(particles.positions, expected_pos)
    np.testing.assert_array_equal(particles.velocities, expected_vel)
    assert sim.tick == 1


def test_step_reversed_order_matches_forward(make_params):
    params = make_params(particle_count=30, color_count=3, beta=0.3)
    forward = Simulation(ParticleSystem(params), params)
    backward = Simulation(ParticleSystem(params), params)

    for _ in range(3):
        forward.step()
        backward.step(order=np.arange(30)[::-1])

    np.testing.assert_array_equal(forward.particles.positions, backward.particles.positions)
    np.testing.assert_array_equal(forward.particles.velocities, backward.particles.velocities)


def test_step_publishes_new_buffers(make_params):
    params = make_params(particle_count=10, color_count=2, beta=0.3)
    particles = ParticleSystem(params)
    sim = Simulation(particles, params)
    snapshot_pos, _ = sim.snapshot()
    old_array = particles.positions

    sim.step()

    assert particles.positions is not old_array
    assert not np.array_equal(particles.positions, snapshot_pos)
    assert particles.positions.shape == (10, 3)


def test_non_finite_particle_is_recovered(make_params, identity2, caplog):
    params = make_params(particle_count=2, color_count=2)
    particles = ParticleSystem(params)
    particles.positions[:] = [[0.0, 0.0, 0.0], [0.5, 0.0, 0.0]]
    particles.velocities[:] = [[np.nan, 0.0, 0.0], [0.0, 0.0, 0.0]]
    sim = Simulation(particles, params)

    with caplog.at_level(logging.WARNING):
        recovered = sim.step()

    assert recovered == 1
    assert sim.anomaly_count == 1
    np.testing.assert_array_equal(particles.velocities[0], 0.0)
    np.testing.assert_array_equal(particles.positions[0], [0.0, 0.0, 0.0])
    assert np.all(np.isfinite(particles.positions[1]))
    assert np.all(np.isfinite(particles.velocities[1]))
    assert "non-finite" in caplog.text


def test_non_finite_position_is_reset_to_origin(make_params):
    params = make_params(particle_count=2, color_count=2)
    positions = np.array([[np.inf, 0.0, np.nan], [0.2, 0.0, 0.0]])
    velocities = np.zeros((2, 3))

    next_pos, next_vel, anomalies = integrate(
        positions, velocities, [0, 1], [[1.0, -1.0], [-1.0, 1.0]], params
    )

    np.testing.assert_array_equal(anomalies, [True, False])
    np.testing.assert_array_equal(next_pos[0], 0.0)
    np.testing.assert_array_equal(next_vel[0], 0.0)
    # The broken neighbour is skipped, so particle 1 feels nothing.
    np.testing.assert_array_equal(next_vel[1], 0.0)


def test_matrix_shape_must_match_colors(make_params):
    params = make_params(particle_count=4, color_count=3)
    with pytest.raises(ConfigurationError):
        Simulation(ParticleSystem(params), params, attraction_matrix=np.eye(2))


def test_explicit_matrix_from_params(make_params):
    values = [[0.5, 0.0], [0.0, -0.5]]
    params = make_params(matrix_policy="explicit", interaction_matrix=values)
    sim = Simulation(ParticleSystem(params), params)
    np.testing.assert_array_equal(sim.interaction_matrix, values)
    assert not sim.interaction_matrix.flags.writeable


def test_mean_speed(make_params):
    params = make_params(particle_count=2, color_count=1)
    particles = ParticleSystem(params)
    particles.velocities[:] = [[3.0, 4.0, 0.0], [0.0, 0.0, 1.0]]
    sim = Simulation(particles, params)
    assert sim.mean_speed() == pytest.approx(3.0)


@pytest.mark.parametrize("override", [
    [[5.0, np.nan], [-1.0, 1.0]],
    [[np.nan, 1.0], [-1.0, 1.0]],
    [[1.0, 1.5], [-1.0, 1.0]],
    [[1.0, np.inf], [-1.0, 1.0]],
])
def test_matrix_override_must_be_finite_and_in_range(make_params, override):
    params = make_params(particle_count=4, color_count=2)
    with pytest.raises(ConfigurationError):
        Simulation(ParticleSystem(params), params, attraction_matrix=override)


def test_matrix_override_is_copied_read_only(make_params):
    params = make_params(particle_count=4, color_count=2)
    override = np.array([[0.5, -0.5], [0.25, 1.0]])
    sim = Simulation(ParticleSystem(params), params, attraction_matrix=override)

    override[0, 0] = -1.0
    assert sim.interaction_matrix[0, 0] == 0.5
    assert not sim.interaction_matrix.flags.writeable


@pytest.mark.parametrize("colors", [[0, 7], [-1, 0], [0], [0, 1, 1], [0.0, 1.0]])
def test_integrate_rejects_colors_outside_matrix(make_params, identity2, colors):
    positions, velocities = _pair()
    with pytest.raises(ValueError):
        integrate(positions, velocities, colors, identity2, make_params())


def test_integrate_rejects_non_square_matrix(make_params):
    positions, velocities = _pair()
    with pytest.raises(ValueError):
        integrate(positions, velocities, [0, 1], [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], make_params())


def test_integrate_rejects_mismatched_shapes(make_params, identity2):
    positions, _ = _pair()
    with pytest.raises(ValueError):
        integrate(positions, np.zeros((3, 3)), [0, 1], identity2, make_params())


def test_published_arrays_are_read_only(make_params):
    params = make_params(particle_count=8, color_count=2, beta=0.3)
    particles = ParticleSystem(params)
    sim = Simulation(particles, params)

    for _ in range(3):
        with pytest.raises(ValueError):
            particles.positions[0, 0] = 0.0
        with pytest.raises(ValueError):
            particles.velocities[0, 0] = 0.0
        sim.step()

    assert sim.tick == 3
    positions, velocities = sim.snapshot()
    assert positions.flags.writeable and velocities.flags.writeable
