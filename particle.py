# particle.py
"""
Manages the state of all particles in the simulation.

This module defines the ParticleSystem class, which is responsible for
initializing and storing particle data (position, velocity, color) in
NumPy arrays, and for generating the color palette handed to the
presentation layer.
"""
import logging
import numpy as np
from typing import Tuple

from constants import DOMAIN_MAX, DOMAIN_MIN, PALETTE_STREAM, POSITION_STREAM, SPATIAL_DIMENSIONS
from parameters import SimulationParameters

# --- Data Contracts ---
#
# initialize_field(particle_count, color_count, seed) -> (positions, velocities, colors, palette):
#   - positions: float64 (N, 3), each axis uniform in [DOMAIN_MIN, DOMAIN_MAX].
#     Particle i draws from a stream keyed by (seed, POSITION_STREAM, i).
#   - velocities: float64 (N, 3), all zero.
#   - colors: int32 (N,), colors[i] == i % color_count.
#   - palette: float64 (color_count, 4) RGBA, RGB uniform in [0, 1], alpha 1.0.
#     Color k draws from a stream keyed by (seed, PALETTE_STREAM, k).
#   - Invariants: identical inputs give bit-identical outputs.
#
# class ParticleSystem:
#   - __init__(self, params: SimulationParameters):
#     - Side Effects: Initializes internal NumPy arrays for particle state.
#     - Invariants:
#       - self.positions is a NumPy array of shape (N, 3) of dtype float64.
#       - self.velocities is a NumPy array of shape (N, 3) of dtype float64.
#       - self.colors is a read-only NumPy array of shape (N,) of dtype int32.
#       - self.palette is a read-only NumPy array of shape (C, 4).


def _stream(seed: int, stream: int, index: int) -> np.random.Generator:
    """A generator keyed by (seed, stream, index), independent of every other key."""
    return np.random.default_rng(np.random.SeedSequence(seed, spawn_key=(stream, index)))


def initial_positions(particle_count: int, seed: int) -> np.ndarray:
    positions = np.empty((particle_count, SPATIAL_DIMENSIONS), dtype=np.float64)
    for i in range(particle_count):
        positions[i] = _stream(seed, POSITION_STREAM, i).uniform(
            DOMAIN_MIN, DOMAIN_MAX, size=SPATIAL_DIMENSIONS
        )
    return positions


def round_robin_colors(particle_count: int, color_count: int) -> np.ndarray:
    return (np.arange(particle_count) % color_count).astype(np.int32)


def generate_palette(color_count: int, seed: int) -> np.ndarray:
    """RGBA palette with independent uniform channels and opaque alpha."""
    palette = np.ones((color_count, 4), dtype=np.float64)
    for k in range(color_count):
        palette[k, :3] = _stream(seed, PALETTE_STREAM, k).uniform(0.0, 1.0, size=3)
    return palette


def initialize_field(
    particle_count: int, color_count: int, seed: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Seeds a fresh particle field and its palette.

    Returns:
        Tuple of (positions, velocities, colors, palette).
    """
    positions = initial_positions(particle_count, seed)
    velocities = np.zeros((particle_count, SPATIAL_DIMENSIONS), dtype=np.float64)
    colors = round_robin_colors(particle_count, color_count)
    palette = generate_palette(color_count, seed)
    return positions, velocities, colors, palette


class ParticleSystem:
    """
    A container for all particles, managing their state via NumPy arrays.
    """
    def __init__(self, params: SimulationParameters):
        """
        Initializes the particle system.

        Args:
            params (SimulationParameters): Validated run parameters.
        """
        self.particle_count = int(params.particle_count)
        self.color_count = int(params.color_count)
        self.seed = params.seed

        # Rule 12: All randomness is controlled by a single master seed.
        # Every particle and palette entry gets its own stream derived from
        # it, so the field does not depend on generation order.
        self.positions, self.velocities, colors, palette = initialize_field(
            self.particle_count, self.color_count, self.seed
        )

        # Colors and palette never change after creation.
        colors.flags.writeable = False
        palette.flags.writeable = False
        self.colors = colors
        self.palette = palette

        logging.info(
            f"ParticleSystem initialized with {self.particle_count} "
            f"particles of {self.color_count} colors."
        )
        logging.debug(
            f"Particle data arrays created. "
            f"Positions shape: {self.positions.shape}, "
            f"Velocities shape: {self.velocities.shape}, "
            f"Colors shape: {self.colors.shape}"
        )
