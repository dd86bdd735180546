# simulation.py
"""
Handles the core simulation logic and physics calculations.

This module defines the Simulation class, which is responsible for
advancing the state of the particle system by one time step. It computes
all-pairs inter-particle forces and updates velocities and positions.
"""
import logging
import math
import numpy as np
from typing import Optional, Tuple
from numba import jit, prange

from attraction import build_attraction_matrix
from constants import INTERACTION_RADIUS
from force_law import force
from geometry import normalize, vector_length, wrap_modulo, wrap_teleport
from parameters import SimulationParameters
from particle import ParticleSystem

# --- Data Contracts ---
#
# integrate(positions, velocities, colors, matrix, params, order=None)
#     -> (next_positions, next_velocities, anomalies):
#   - Inputs:
#     - positions, velocities: float64 (N, 3), the pre-step state. Not modified.
#     - colors: int (N,), color index per particle.
#     - matrix: float64 (C, C) attraction matrix, indexed [self, other].
#     - params: SimulationParameters (dt, beta, friction, wrap_mode).
#     - order: Optional permutation of range(N), the order in which
#       particles are processed. The result does not depend on it.
#   - Outputs: freshly allocated next-state arrays, and a bool (N,) array
#     marking particles whose update produced a non-finite value.
#   - Errors: ValueError if colors do not index a square matrix, or if
#     the array shapes disagree.
#
# class Simulation:
#   - __init__(self, particles: ParticleSystem, params: SimulationParameters,
#              attraction_matrix: Optional[np.ndarray] = None):
#     - Side Effects: Builds the attraction matrix from params, or validates
#       the given one like an explicit matrix. Marks the particle arrays
#       read-only and allocates the back buffers.
#     - Errors: ConfigurationError for a matrix of the wrong shape or with
#       entries outside [-1, 1] or non-finite.
#
#   - step(self, order=None) -> int:
#     - Side Effects: Replaces particles.positions and particles.velocities
#       with the next state. The swap happens only after every particle has
#       been computed, so readers never observe a half-updated tick.
#       The published arrays are read-only.
#     - Outputs: number of particles recovered from a numeric anomaly.
#     - Invariants: Particle count and colors never change.


@jit(nopython=True, parallel=True)
def _step_numba(
    positions, velocities, colors, matrix, order, beta, friction, dt,
    modulo_wrap, next_positions, next_velocities, anomalies
):
    """
    Numba-jitted all-pairs integration kernel.

    One independent unit of work per particle. Each unit reads the full
    pre-step snapshot and writes only its own slot of the output buffers.
    """
    particle_count = positions.shape[0]

    for k in prange(order.shape[0]):
        i = order[k]
        px = positions[i, 0]
        py = positions[i, 1]
        pz = positions[i, 2]
        color_i = colors[i]

        fx = 0.0
        fy = 0.0
        fz = 0.0
        for j in range(particle_count):
            if j == i:
                continue
            # Direction is FROM i TO j
            dx = positions[j, 0] - px
            dy = positions[j, 1] - py
            dz = positions[j, 2] - pz
            distance = vector_length(dx, dy, dz)

            # NaN distances from a broken neighbour compare false and are skipped.
            if distance < INTERACTION_RADIUS:
                magnitude = force(distance, matrix[color_i, colors[j]], beta)
                ux, uy, uz = normalize(dx, dy, dz)
                fx += magnitude * ux
                fy += magnitude * uy
                fz += magnitude * uz

        # Friction first, then the force as acceleration (unit mass).
        vx = velocities[i, 0] * friction + fx * dt
        vy = velocities[i, 1] * friction + fy * dt
        vz = velocities[i, 2] * friction + fz * dt

        x = px + vx * dt
        y = py + vy * dt
        z = pz + vz * dt
        if modulo_wrap:
            x = wrap_modulo(x)
            y = wrap_modulo(y)
            z = wrap_modulo(z)
        else:
            x = wrap_teleport(x)
            y = wrap_teleport(y)
            z = wrap_teleport(z)

        if (math.isfinite(vx) and math.isfinite(vy) and math.isfinite(vz)
                and math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
            anomalies[i] = False
            next_velocities[i, 0] = vx
            next_velocities[i, 1] = vy
            next_velocities[i, 2] = vz
            next_positions[i, 0] = x
            next_positions[i, 1] = y
            next_positions[i, 2] = z
        else:
            # Recover the particle: stop it where it was, or at the origin
            # if its previous position was already broken.
            anomalies[i] = True
            next_velocities[i, 0] = 0.0
            next_velocities[i, 1] = 0.0
            next_velocities[i, 2] = 0.0
            if math.isfinite(px) and math.isfinite(py) and math.isfinite(pz):
                next_positions[i, 0] = px
                next_positions[i, 1] = py
                next_positions[i, 2] = pz
            else:
                next_positions[i, 0] = 0.0
                next_positions[i, 1] = 0.0
                next_positions[i, 2] = 0.0


def _processing_order(particle_count: int, order: Optional[np.ndarray]) -> np.ndarray:
    if order is None:
        return np.arange(particle_count, dtype=np.int64)
    order = np.asarray(order, dtype=np.int64)
    if order.shape != (particle_count,) or not np.array_equal(
        np.sort(order), np.arange(particle_count)
    ):
        raise ValueError("order must be a permutation of range(particle_count)")
    return order


def _field_arrays(positions, velocities, colors, matrix):
    """
    Coerces the inputs of integrate() and checks that every color indexes
    the matrix. The kernel does no bounds checking of its own.
    """
    positions = np.ascontiguousarray(positions, dtype=np.float64)
    velocities = np.ascontiguousarray(velocities, dtype=np.float64)
    colors = np.asarray(colors)
    matrix = np.asarray(matrix, dtype=np.float64)

    if positions.ndim != 2 or positions.shape[1] != 3 or velocities.shape != positions.shape:
        raise ValueError("positions and velocities must both have shape (N, 3)")
    particle_count = positions.shape[0]
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"attraction matrix must be square, got shape {matrix.shape}")
    if colors.shape != (particle_count,) or not np.issubdtype(colors.dtype, np.integer):
        raise ValueError(f"colors must be {particle_count} integers, one per particle")
    if particle_count and (colors.min() < 0 or colors.max() >= matrix.shape[0]):
        raise ValueError(f"colors must lie in [0, {matrix.shape[0]})")
    return positions, velocities, colors.astype(np.int32, copy=False), matrix


def integrate(
    positions: np.ndarray,
    velocities: np.ndarray,
    colors: np.ndarray,
    matrix: np.ndarray,
    params: SimulationParameters,
    order: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Advances a particle field by one timestep without touching the inputs.

    Returns:
        Tuple of (next_positions, next_velocities, anomalies).
    """
    positions, velocities, colors, matrix = _field_arrays(positions, velocities, colors, matrix)
    particle_count = positions.shape[0]

    next_positions = np.empty_like(positions)
    next_velocities = np.empty_like(velocities)
    anomalies = np.zeros(particle_count, dtype=np.bool_)

    _step_numba(
        positions, velocities, colors, matrix,
        _processing_order(particle_count, order),
        float(params.beta), float(params.friction), float(params.dt),
        params.wrap_mode == "modulo",
        next_positions, next_velocities, anomalies
    )
    return next_positions, next_velocities, anomalies


class Simulation:
    """
    Owns the attraction matrix and advances the particle system one tick
    at a time using a double-buffered all-pairs integrator.
    """
    def __init__(
        self,
        particles: ParticleSystem,
        params: SimulationParameters,
        attraction_matrix: Optional[np.ndarray] = None,
    ):
        """
        Initializes the simulation environment.

        Args:
            particles (ParticleSystem): The particle system to simulate.
            params (SimulationParameters): Validated run parameters.
            attraction_matrix (Optional[np.ndarray]): Overrides the matrix
                that would otherwise be built from params.
        """
        self.particles = particles
        self.params = params
        self.dt = float(params.dt)
        self.beta = float(params.beta)
        self.friction = float(params.friction)
        self.modulo_wrap = params.wrap_mode == "modulo"

        if attraction_matrix is None:
            attraction_matrix = build_attraction_matrix(
                particles.color_count,
                policy=params.matrix_policy,
                seed=params.seed,
                values=params.interaction_matrix,
            )
        else:
            # An override gets the same shape, range and finiteness checks as
            # a matrix from the config file.
            attraction_matrix = build_attraction_matrix(
                particles.color_count, policy="explicit", values=attraction_matrix
            )
        self.interaction_matrix = attraction_matrix

        # Front buffers are published read-only. Back buffers are private;
        # step() writes into them and then swaps them with the front.
        particles.positions = np.ascontiguousarray(particles.positions, dtype=np.float64)
        particles.velocities = np.ascontiguousarray(particles.velocities, dtype=np.float64)
        particles.positions.flags.writeable = False
        particles.velocities.flags.writeable = False
        self._next_positions = np.empty_like(self.particles.positions)
        self._next_velocities = np.empty_like(self.particles.velocities)
        self._anomalies = np.zeros(self.particles.particle_count, dtype=np.bool_)
        self._default_order = np.arange(self.particles.particle_count, dtype=np.int64)

        self.tick = 0
        self.anomaly_count = 0

        logging.info("Simulation logic initialized and configuration validated.")
        logging.info(
            f"All-pairs integrator: dt={self.dt}, beta={self.beta}, "
            f"friction={self.friction}, wrap={params.wrap_mode}."
        )

    def step(self, order: Optional[np.ndarray] = None) -> int:
        """
        Executes one time step of the simulation.

        Returns:
            int: The number of particles recovered from a numeric anomaly.
        """
        particles = self.particles
        if order is None:
            order = self._default_order
        else:
            order = _processing_order(particles.particle_count, order)

        # 1. Compute every particle's next state from the current snapshot.
        _step_numba(
            particles.positions, particles.velocities, particles.colors,
            self.interaction_matrix, order,
            self.beta, self.friction, self.dt, self.modulo_wrap,
            self._next_positions, self._next_velocities, self._anomalies
        )

        # 2. Publish. The kernel has returned, so every slot is written.
        particles.positions, self._next_positions = self._next_positions, particles.positions
        particles.velocities, self._next_velocities = self._next_velocities, particles.velocities
        particles.positions.flags.writeable = False
        particles.velocities.flags.writeable = False
        self._next_positions.flags.writeable = True
        self._next_velocities.flags.writeable = True
        self.tick += 1

        # 3. Report anomalies without halting the run.
        anomalies = int(np.count_nonzero(self._anomalies))
        if anomalies:
            self.anomaly_count += anomalies
            first = np.flatnonzero(self._anomalies)[:5].tolist()
            logging.warning(
                f"Tick {self.tick}: {anomalies} particle(s) produced non-finite "
                f"state and were reset in place (first indices: {first})."
            )
        return anomalies

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray]:
        """Returns copies of the current positions and velocities."""
        return self.particles.positions.copy(), self.particles.velocities.copy()

    def mean_speed(self) -> float:
        return float(np.mean(np.linalg.norm(self.particles.velocities, axis=1)))
