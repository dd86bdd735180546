# parameters.py
"""
Run-time configuration of a simulation run.

This module defines the SimulationParameters record, which collects the
values that are fixed for the lifetime of a run and validates them before
any component is built from them.
"""
import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from constants import DEFAULT_SIMULATION_PARAMETERS, MATRIX_POLICIES, WRAP_MODES
from errors import ConfigurationError

# --- Data Contracts ---
#
# class SimulationParameters:
#   - Fields:
#     - particle_count: int >= 1
#     - color_count: int >= 1
#     - seed: int >= 0
#     - dt: float, finite and > 0
#     - beta: float, strictly between 0 and 1
#     - friction: float in [0, 1], multiplies velocity once per tick
#     - matrix_policy: one of MATRIX_POLICIES
#     - interaction_matrix: Optional color_count x color_count nested list,
#       required when matrix_policy == "explicit"
#     - wrap_mode: one of WRAP_MODES
#   - Invariants: instances are immutable and always valid. Invalid values
#     raise ConfigurationError from __post_init__.
#
#   - from_config(params: Dict[str, Any]) -> SimulationParameters:
#     - Inputs: the "simulation_parameters" section of config.json.
#       Missing keys fall back to DEFAULT_SIMULATION_PARAMETERS; unknown
#       keys are logged and ignored.


def _fail(msg: str) -> None:
    logging.critical(msg)
    raise ConfigurationError(msg)


_NUMERIC_FIELDS = (
    ("particle_count", int),
    ("color_count", int),
    ("seed", int),
    ("dt", float),
    ("beta", float),
    ("friction", float),
)


def _coerce(name: str, value: Any, kind: type) -> Any:
    """Converts a numeric field, rejecting strings, bools and lossy ints."""
    if isinstance(value, (str, bytes, bool)):
        _fail(f"Configuration error: {name} must be a number, got {value!r}.")
    try:
        converted = kind(value)
    except (TypeError, ValueError, OverflowError):
        _fail(f"Configuration error: {name} must be a number, got {value!r}.")
    if kind is int and converted != value:
        _fail(f"Configuration error: {name} must be an integer, got {value!r}.")
    return converted


@dataclass(frozen=True)
class SimulationParameters:
    """
    Immutable, validated parameters for one simulation run.
    """
    particle_count: int = DEFAULT_SIMULATION_PARAMETERS["particle_count"]
    color_count: int = DEFAULT_SIMULATION_PARAMETERS["color_count"]
    seed: int = DEFAULT_SIMULATION_PARAMETERS["seed"]
    dt: float = DEFAULT_SIMULATION_PARAMETERS["dt"]
    beta: float = DEFAULT_SIMULATION_PARAMETERS["beta"]
    friction: float = DEFAULT_SIMULATION_PARAMETERS["friction"]
    matrix_policy: str = DEFAULT_SIMULATION_PARAMETERS["matrix_policy"]
    interaction_matrix: Optional[List[List[float]]] = field(default=None, compare=False)
    wrap_mode: str = DEFAULT_SIMULATION_PARAMETERS["wrap_mode"]

    def __post_init__(self):
        # Numeric fields are coerced in place so both direct construction
        # and from_config report bad types as ConfigurationError.
        for name, kind in _NUMERIC_FIELDS:
            object.__setattr__(self, name, _coerce(name, getattr(self, name), kind))

        if self.particle_count < 1:
            _fail(
                f"Configuration error: particle_count must be a positive integer, "
                f"got {self.particle_count!r}."
            )
        if self.color_count < 1:
            _fail(
                f"Configuration error: color_count must be a positive integer, "
                f"got {self.color_count!r}."
            )
        if self.seed < 0:
            _fail(f"Configuration error: seed must be non-negative, got {self.seed!r}.")
        if not (math.isfinite(self.dt) and self.dt > 0):
            _fail(f"Configuration error: dt must be finite and positive, got {self.dt!r}.")
        if not (0.0 < self.beta < 1.0):
            _fail(
                f"Configuration error: beta must lie strictly between 0 and 1, "
                f"got {self.beta!r}. The force law divides by beta and by (1 - beta)."
            )
        if not (0.0 <= self.friction <= 1.0):
            _fail(f"Configuration error: friction must lie in [0, 1], got {self.friction!r}.")
        if self.matrix_policy not in MATRIX_POLICIES:
            _fail(
                f"Configuration error: unknown matrix_policy {self.matrix_policy!r}. "
                f"Expected one of {MATRIX_POLICIES}."
            )
        if self.matrix_policy == "explicit" and self.interaction_matrix is None:
            _fail("Configuration error: matrix_policy 'explicit' requires an interaction_matrix.")
        if self.matrix_policy != "explicit" and self.interaction_matrix is not None:
            logging.warning(
                f"interaction_matrix is ignored because matrix_policy is "
                f"'{self.matrix_policy}'. Use matrix_policy 'explicit' to apply it."
            )
        if self.wrap_mode not in WRAP_MODES:
            _fail(
                f"Configuration error: unknown wrap_mode {self.wrap_mode!r}. "
                f"Expected one of {WRAP_MODES}."
            )

    @classmethod
    def from_config(cls, params: Dict[str, Any]) -> "SimulationParameters":
        """
        Builds parameters from the "simulation_parameters" config section.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(params) - known)
        if unknown:
            logging.warning(f"Ignoring unknown simulation parameters: {', '.join(unknown)}")

        values = dict(DEFAULT_SIMULATION_PARAMETERS)
        values.update({k: v for k, v in params.items() if k in known})
        # An explicit matrix in the config implies the explicit policy unless
        # the config says otherwise.
        if "interaction_matrix" in params and "matrix_policy" not in params:
            values["matrix_policy"] = "explicit"
        return cls(**values)

    def as_display_dict(self) -> Dict[str, Any]:
        """Returns the scalar parameters, for logging and the UI panel."""
        return {
            "seed": self.seed,
            "particle_count": self.particle_count,
            "color_count": self.color_count,
            "dt": self.dt,
            "beta": self.beta,
            "friction": self.friction,
            "matrix_policy": self.matrix_policy,
            "wrap_mode": self.wrap_mode,
        }
