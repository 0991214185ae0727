"""Console runner for the patrol scenario.

Usage:
    python -m dronesim.scenarios.patrol
    python -m dronesim.scenarios.patrol --steps 400 --dt 0.05
"""

from __future__ import annotations

import argparse
import sys

from dronesim.config import SimulationSettings
from dronesim.engine.simulator import Simulator
from dronesim.logging_config import configure_logging
from dronesim.scenarios.patrol import create_simulator


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run the patrol scenario headlessly.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--steps", type=int, default=200, help="Number of steps to run")
    parser.add_argument("--dt", type=float, default=0.05, help="Step size in seconds")
    parser.add_argument(
        "--summary-interval",
        type=int,
        default=20,
        help="Print fleet state every N steps",
    )
    parser.add_argument("--seed", type=int, default=None, help="Network random seed")
    return parser.parse_args(argv)


def print_state_summary(sim: Simulator) -> None:
    """Print one line of fleet state."""
    print(f"t={sim.time:7.3f} | ", end="")
    for drone in sim.drones:
        print(f"D{drone.id}=({drone.position.x:6.2f},{drone.position.y:6.2f}) ", end="")
    print(
        f"| in_flight={len(sim.network.in_transit)} "
        f"delivered={sim.network.delivered_count} "
        f"dropped={len(sim.network.dropped_messages)}"
    )


def main(argv: list[str] | None = None) -> int:
    """Run the patrol scenario and print the comms summary."""
    args = parse_args(argv)

    configure_logging()

    settings = SimulationSettings(seed=args.seed)
    sim = create_simulator(settings)

    print(f"Starting patrol scenario for {args.steps} steps of {args.dt} s...")
    print("=" * 70)
    print_state_summary(sim)

    for _ in range(args.steps):
        sim.step(args.dt)
        if sim.step_count % args.summary_interval == 0:
            print_state_summary(sim)

    print("=" * 70)
    print(sim.report_summary().format_summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
