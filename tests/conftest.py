import logging

import numpy as np
import pytest

from parameters import SimulationParameters


@pytest.fixture
def make_params():
    """Factory for parameters with small, test-friendly defaults."""
    def _make(**overrides):
        values = dict(
            particle_count=2,
            color_count=2,
            seed=7,
            dt=0.01,
            beta=0.1,
            friction=1.0,
        )
        values.update(overrides)
        return SimulationParameters(**values)
    return _make


@pytest.fixture
def identity2():
    return np.array([[1.0, -1.0], [-1.0, 1.0]])


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
