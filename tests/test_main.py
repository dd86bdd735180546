import json

import pytest

from main import main, run_loop
from parameters import SimulationParameters
from particle import ParticleSystem
from simulation import Simulation


@pytest.fixture
def small_sim():
    params = SimulationParameters(particle_count=20, color_count=3, seed=4)
    return Simulation(ParticleSystem(params), params)


class _ClosingVisualizer:
    """Stands in for the window; reports a quit on the given frame."""

    def __init__(self, quit_on):
        self.quit_on = quit_on
        self.frames = 0

    def draw(self, particles, simulation):
        self.frames += 1
        return self.frames < self.quit_on


def test_run_loop_stops_at_max_steps(small_sim):
    steps = run_loop(small_sim, None, {"max_steps": 5, "log_throttle_steps": 2})
    assert steps == 5
    assert small_sim.tick == 5


def test_run_loop_zero_steps(small_sim):
    assert run_loop(small_sim, None, {"max_steps": 0}) == 0
    assert small_sim.tick == 0


def test_run_loop_stops_when_window_closes(small_sim):
    visualizer = _ClosingVisualizer(quit_on=3)
    steps = run_loop(small_sim, visualizer, {"max_steps": None})
    assert steps == 3
    assert visualizer.frames == 3


def _write_config(tmp_path, **sim_overrides):
    sim_params = {"particle_count": 15, "color_count": 3, "seed": 9}
    sim_params.update(sim_overrides)
    config = {
        "logging": {"level": "INFO", "log_file": str(tmp_path / "logs" / "run.log")},
        "simulation_parameters": sim_params,
        "run_control": {"max_steps": 4, "log_throttle_steps": 2},
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))
    return str(path)


def test_main_headless(tmp_path, restore_root_logger):
    path = _write_config(tmp_path)
    assert main(["--config", path, "--headless"]) == 0
    assert "finished after 4 steps" in (tmp_path / "logs" / "run.log").read_text()


def test_main_steps_override(tmp_path, restore_root_logger):
    path = _write_config(tmp_path)
    assert main(["--config", path, "--headless", "--steps", "2"]) == 0
    assert "finished after 2 steps" in (tmp_path / "logs" / "run.log").read_text()


def test_main_rejects_bad_parameters(tmp_path, restore_root_logger):
    path = _write_config(tmp_path, beta=1.0)
    assert main(["--config", path, "--headless"]) == 1


def test_main_missing_config(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "nope.json"), "--headless"]) == 1
    assert "FATAL" in capsys.readouterr().out
