# main.py
"""
Main entry point for the 3D Particle Life simulation.

This script orchestrates the entire simulation lifecycle:
1. Loads configuration from `config.json` (or the path given on the command line).
2. Initializes the logging system.
3. Sets up the particles, the attraction matrix and the simulation.
4. Runs the main simulation loop, with or without a window.
5. Handles clean shutdown.
"""
import argparse
import logging
import cProfile
import pstats
import io
from typing import Any, Dict, Optional, TYPE_CHECKING

from utils import setup_logging, load_config, config_sections

if TYPE_CHECKING:
    from simulation import Simulation
    from visualization import Visualizer


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="3D particle life simulation")
    parser.add_argument('--config', default='config.json', help="Path to the JSON configuration file.")
    parser.add_argument('--headless', action='store_true', help="Run without opening a window.")
    parser.add_argument('--steps', type=int, default=None, help="Override run_control.max_steps.")
    return parser.parse_args(argv)


def run_loop(sim: "Simulation", visualizer: Optional["Visualizer"], run_params: Dict[str, Any]) -> int:
    """
    Advances the simulation until max_steps is reached, the window is
    closed, or the process is interrupted. Stopping only ever happens
    between ticks.

    Returns:
        int: The number of ticks executed.
    """
    log_throttle = run_params.get('log_throttle_steps', 100)
    # None means run until told to stop.
    max_steps = run_params.get('max_steps', 5000)

    step_num = 0
    running = max_steps is None or max_steps > 0
    try:
        while running:
            sim.step()
            step_num += 1

            # The visualizer returns False if the user quits.
            if visualizer is not None and not visualizer.draw(sim.particles, sim):
                running = False

            # Rule 2.4: Hot loops must throttle logs
            if log_throttle and step_num % log_throttle == 0:
                logging.info(f"Simulation step {step_num}/{max_steps if max_steps is not None else '-'}")
                logging.debug(
                    f"Step {step_num} | Average Speed: {sim.mean_speed():.4f} | "
                    f"Anomalies so far: {sim.anomaly_count}"
                )

            if max_steps is not None and step_num >= max_steps:
                logging.info(f"Reached max_steps ({max_steps}). Stopping simulation.")
                running = False
    except KeyboardInterrupt:
        logging.info(f"Interrupted after {step_num} steps. Stopping simulation.")
    return step_num


def main(argv=None):
    """
    The main function to run the simulation.
    """
    args = parse_args(argv)

    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"FATAL: Could not load {args.config}. Error: {e}")
        return 1

    setup_logging(config)

    logging.info("--- Particle Life 3D Simulation Starting ---")

    sim_section, run_params, vis_params = config_sections(config)
    if args.steps is not None:
        run_params = dict(run_params, max_steps=args.steps)
    headless = args.headless or vis_params.get('headless', False)

    from errors import ConfigurationError
    from parameters import SimulationParameters
    from particle import ParticleSystem
    from simulation import Simulation

    # --- Component Initialization ---
    try:
        params = SimulationParameters.from_config(sim_section)
        particles = ParticleSystem(params)
        sim = Simulation(particles, params)
    except ConfigurationError as e:
        logging.critical(f"Aborting: {e}")
        return 1

    visualizer = None
    if not headless:
        from visualization import Visualizer
        visualizer = Visualizer(
            particles.palette,
            fullscreen=vis_params.get('fullscreen', False),
            sim_params=params.as_display_dict()
        )

    profiler = cProfile.Profile() if run_params.get('profile', False) else None

    if profiler is not None:
        profiler.enable()
    steps = run_loop(sim, visualizer, run_params)
    if profiler is not None:
        profiler.disable()

    if visualizer is not None:
        visualizer.close()
    logging.info(f"Simulation loop finished after {steps} steps.")

    if profiler is not None:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        # Sort by cumulative time spent in the function
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20) # Print top 20 slowest functions
        logging.info(f"\n{s.getvalue()}")

    logging.info("--- Particle Life 3D Simulation Shutting Down ---")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
