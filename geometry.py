# geometry.py
"""
Small 3D vector helpers shared by the physics kernels.

All functions operate on scalar components rather than arrays so Numba
can inline them into the per-pair hot loop without allocating.
"""
import math
from numba import jit

from constants import DOMAIN_MAX, DOMAIN_MIN

# --- Data Contracts ---
#
# vector_length(x, y, z) -> float
# normalize(x, y, z) -> (float, float, float)
#   - A zero-length (or non-finite length) vector normalizes to (0, 0, 0).
# wrap_teleport(x) -> float
#   - x > DOMAIN_MAX -> DOMAIN_MIN; x < DOMAIN_MIN -> DOMAIN_MAX; else x.
# wrap_modulo(x) -> float
#   - Maps any finite x into [DOMAIN_MIN, DOMAIN_MAX).

_DOMAIN_WIDTH = DOMAIN_MAX - DOMAIN_MIN


@jit(nopython=True)
def vector_length(x, y, z):
    return math.sqrt(x * x + y * y + z * z)


@jit(nopython=True)
def normalize(x, y, z):
    """Unit vector along (x, y, z); the zero vector maps to itself."""
    length = math.sqrt(x * x + y * y + z * z)
    if length > 0.0 and math.isfinite(length):
        return x / length, y / length, z / length
    return 0.0, 0.0, 0.0


@jit(nopython=True)
def wrap_teleport(x):
    """
    Single-step wrap: a coordinate past one face reappears exactly on the
    opposite face. Does not handle a jump wider than the domain.
    """
    if x > DOMAIN_MAX:
        return DOMAIN_MIN
    elif x < DOMAIN_MIN:
        return DOMAIN_MAX
    return x


@jit(nopython=True)
def wrap_modulo(x):
    """True periodic wrap into [DOMAIN_MIN, DOMAIN_MAX)."""
    return (x - DOMAIN_MIN) % _DOMAIN_WIDTH + DOMAIN_MIN
