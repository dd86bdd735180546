# attraction.py
"""
Construction of the color-pair attraction matrix.

The matrix maps (self color, other color) to a signed coefficient in
[-1, 1]. It is built once per run and handed out read-only.
"""
import logging
import numpy as np
from typing import List, Optional

from constants import MATRIX_STREAM
from errors import ConfigurationError

# --- Data Contracts ---
#
# build_attraction_matrix(color_count, policy="identity", seed=None, values=None) -> np.ndarray
#   - Inputs:
#     - color_count: int >= 1
#     - policy: "identity" | "random" | "explicit"
#       - "identity": +1.0 on the diagonal, -1.0 everywhere else.
#       - "random": +1.0 on the diagonal, off-diagonal entries uniform in
#         [-1, 1] drawn from a generator keyed by seed.
#       - "explicit": values, a color_count x color_count nested list.
#     - seed: int, used by the "random" policy.
#     - values: Optional nested list, used by the "explicit" policy.
#   - Outputs: float64 array of shape (color_count, color_count) with
#     writeable=False.
#   - Invariants: every entry is finite and within [-1, 1]. The matrix is
#     not symmetrized; entry [i, j] is the coefficient particle color i
#     feels towards color j.
#   - Errors: ConfigurationError for an unknown policy or an invalid
#     explicit matrix.


def _identity_matrix(color_count: int) -> np.ndarray:
    matrix = np.full((color_count, color_count), -1.0, dtype=np.float64)
    np.fill_diagonal(matrix, 1.0)
    return matrix


def _random_matrix(color_count: int, seed: int) -> np.ndarray:
    # Rule 12: All randomness is controlled by the master seed.
    rng = np.random.default_rng(np.random.SeedSequence(seed, spawn_key=(MATRIX_STREAM,)))
    matrix = rng.uniform(-1.0, 1.0, size=(color_count, color_count))
    np.fill_diagonal(matrix, 1.0)
    return matrix


def _explicit_matrix(color_count: int, values: Optional[List[List[float]]]) -> np.ndarray:
    try:
        matrix = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        msg = f"Configuration error: interaction matrix could not be parsed: {e}"
        logging.critical(msg)
        raise ConfigurationError(msg) from e

    if matrix.shape != (color_count, color_count):
        msg = (
            f"Configuration error: Interaction matrix shape {matrix.shape} "
            f"does not match color_count ({color_count}). The matrix must be square "
            f"and its dimensions must equal the number of colors."
        )
        logging.critical(msg)
        raise ConfigurationError(msg)
    if not np.all(np.isfinite(matrix)) or np.any(np.abs(matrix) > 1.0):
        msg = "Configuration error: every interaction matrix entry must be finite and within [-1, 1]."
        logging.critical(msg)
        raise ConfigurationError(msg)
    return matrix


def build_attraction_matrix(
    color_count: int,
    policy: str = "identity",
    seed: Optional[int] = None,
    values: Optional[List[List[float]]] = None,
) -> np.ndarray:
    """
    Builds the immutable attraction matrix using the requested policy.
    """
    if policy == "identity":
        matrix = _identity_matrix(color_count)
    elif policy == "random":
        matrix = _random_matrix(color_count, 0 if seed is None else seed)
    elif policy == "explicit":
        matrix = _explicit_matrix(color_count, values)
    else:
        msg = f"Configuration error: unknown attraction matrix policy {policy!r}."
        logging.critical(msg)
        raise ConfigurationError(msg)

    matrix.flags.writeable = False
    logging.info(f"Attraction matrix built with '{policy}' policy ({color_count}x{color_count}).")
    logging.debug(f"Attraction matrix:\n{np.array2string(matrix, precision=2)}")
    return matrix
