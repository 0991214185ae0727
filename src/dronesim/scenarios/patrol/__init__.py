"""The patrol scenario: three drones reporting to HQ over a lossy link.

- Drone 0 climbs at full thrust from the lower left
- Drone 1 pushes east with a partial diagonal force from the middle
- Drone 2 drifts up from the upper right on just over hover thrust, no speed limit

Every drone reports ``STATUS pos=(..) vel=(..)`` to HQ each report interval.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import TYPE_CHECKING

from dronesim.engine.simulator import Simulator
from dronesim.model import DroneParams, Vector2
from dronesim.recorders import CommsLogWriter, TelemetryWriter

if TYPE_CHECKING:
    from dronesim.config import SimulationSettings
    from dronesim.engine.network import EventSink
    from dronesim.engine.simulator import TelemetrySink

logger = logging.getLogger(__name__)

HOVER_MASS = 1.5  # kg


def create_fleet(sim: Simulator) -> list[int]:
    """Add the three patrol drones and set their thrust commands.

    Returns:
        The new drone ids in creation order.
    """
    climber = sim.add_drone(
        DroneParams(mass=1.0, max_thrust=15.0, max_speed=10.0),
        Vector2(10.0, 10.0),
    )
    sim.set_drone_thrust_direction(climber, Vector2(0.0, 1.0))

    runner = sim.add_drone(
        DroneParams(mass=2.0, max_thrust=30.0, max_speed=12.0),
        Vector2(50.0, 50.0),
    )
    sim.set_drone_thrust_force(runner, Vector2(12.0, 19.6))

    hover = sim.add_drone(
        DroneParams(mass=HOVER_MASS, max_thrust=20.0, max_speed=0.0),
        Vector2(80.0, 80.0),
    )
    # Thrust slightly above weight: a slow drift upward until the ceiling stops it
    sim.set_drone_thrust_force(hover, Vector2(0.0, HOVER_MASS * 9.8 + 0.1))

    return [climber, runner, hover]


def create_simulator(
    settings: SimulationSettings,
    event_sink: EventSink | None = None,
    telemetry_sink: TelemetrySink | None = None,
) -> Simulator:
    """Build the patrol scenario from settings.

    Args:
        settings: World, network and reporting settings.
        event_sink: Receives the network's CommsEvents.
        telemetry_sink: Receives per-step TelemetryRecords.

    Returns:
        Simulator with the fleet created, at t=0.
    """
    sim = Simulator(
        world=settings.build_world(),
        network=settings.build_network(event_sink=event_sink),
        report_interval=settings.report_interval,
        hub_name=settings.hub_name,
        telemetry_sink=telemetry_sink,
    )
    create_fleet(sim)
    return sim


def run_patrol(settings: SimulationSettings, steps: int, dt: float) -> Simulator:
    """Run the patrol scenario headless, writing the CSV logs named in settings.

    Returns:
        The simulator after the last step.
    """
    with ExitStack() as stack:
        event_sink = None
        telemetry_sink = None
        if settings.comms_log_path is not None:
            event_sink = stack.enter_context(CommsLogWriter(settings.comms_log_path))
        if settings.telemetry_path is not None:
            telemetry_sink = stack.enter_context(TelemetryWriter(settings.telemetry_path))

        sim = create_simulator(settings, event_sink=event_sink, telemetry_sink=telemetry_sink)
        logger.info("Running patrol scenario: %d steps of %.3f s", steps, dt)
        sim.run(steps, dt)

        # Sinks close with the ExitStack; later steps must not write to them
        sim.network.event_sink = None
        sim.telemetry_sink = None

    return sim
