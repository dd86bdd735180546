# force_law.py
"""
The particle-life force law.

A pure function of distance, attraction coefficient and the shape
parameter beta. Distances are normalized so that the interaction radius
is 1.0.
"""
from numba import jit

from constants import INTERACTION_RADIUS

# --- Data Contracts ---
#
# force(distance, attraction, beta) -> float:
#   - Inputs:
#     - distance: float >= 0, normalized by the interaction radius.
#     - attraction: float in [-1, 1], the coefficient for (self, other).
#     - beta: float in (0, 1).
#   - Outputs: signed radial force magnitude. Positive pulls towards the
#     other particle, negative pushes away.
#   - Invariants: returns 0.0 for every distance >= 1.0. The short-range
#     branch is <= 0 regardless of attraction.


@jit(nopython=True)
def force(distance, attraction, beta):
    """
    Piecewise force magnitude.

    Below beta the force is a universal repulsion that falls linearly from
    -1 at contact to 0 at beta. Between beta and the interaction radius it
    scales with the attraction coefficient, equal to `attraction` at
    (1 + beta) / 2 and reaching 0 at the radius. The two branches do not
    in general meet at beta.
    """
    if distance < beta:
        return distance / beta - 1.0
    elif distance < INTERACTION_RADIUS:
        return attraction * (1.0 - (2.0 * distance - 1.0 - beta) / (1.0 - beta))
    return 0.0
