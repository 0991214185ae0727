"""Simulator: one clock driving drone physics and the comms network together.

Step sequence (``Simulator.step(dt)``):
1. Advance the simulation clock by dt
2. Update every drone's physics, in creation order
3. Emit one telemetry record per drone (if a telemetry sink is attached)
4. If a report is due, every drone sends its status to the hub, then the
   next report time moves forward by whole report intervals until it is in
   the future (at most one report batch per step)
5. Step the network so that due messages are delivered
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from dronesim.model.drone import Drone, DroneParams
from dronesim.model.world import World

if TYPE_CHECKING:
    from dronesim.engine.network import DeliveryResult, Network, NetworkSummary
    from dronesim.model.vector import Vector2

logger = logging.getLogger(__name__)

DEFAULT_REPORT_INTERVAL = 0.5  # seconds between status reports
DEFAULT_HUB_NAME = "HQ"


class CommandResult(StrEnum):
    """Result of a command addressed to a drone by id."""

    OK = "ok"
    INVALID_REFERENCE = "invalid_reference"


@dataclass(frozen=True)
class TelemetryRecord:
    """Position and velocity of one drone at one simulation time."""

    time: float
    drone_id: int
    x: float
    y: float
    vx: float
    vy: float


TelemetrySink = Callable[[TelemetryRecord], None]


def node_name_for(drone_id: int) -> str:
    """Network node name for a drone, e.g. ``Drone0``."""
    return f"Drone{drone_id}"


class Simulator:
    """Owns the world, the drones and the comms network.

    Drones are addressed by id (their index in creation order). Commands to
    an unknown id change nothing and return ``CommandResult.INVALID_REFERENCE``.
    """

    def __init__(
        self,
        world: World | None = None,
        network: Network | None = None,
        report_interval: float = DEFAULT_REPORT_INTERVAL,
        hub_name: str = DEFAULT_HUB_NAME,
        telemetry_sink: TelemetrySink | None = None,
    ) -> None:
        """Initialize the simulator and register the hub node.

        Args:
            world: Physical parameters; defaults to Earth gravity in 100x100 m.
            network: Comms network; defaults to one built from ``get_settings()``.
            report_interval: Seconds between status report batches (> 0).
            hub_name: Node that receives every status report.
            telemetry_sink: Callable receiving a TelemetryRecord per drone per step.

        Raises:
            ValueError: If report_interval is not positive.
        """
        if report_interval <= 0:
            raise ValueError(f"report_interval must be > 0, got {report_interval}")

        self.world = world if world is not None else World()
        if network is None:
            # Deferred: dronesim.config imports the engine package
            from dronesim.config import get_settings

            network = get_settings().build_network()
        self.network = network
        self.report_interval = report_interval
        self.hub_name = hub_name
        self.telemetry_sink = telemetry_sink

        self._drones: list[Drone] = []
        self.time = 0.0
        self.next_report_time = report_interval
        self.step_count = 0

        self.network.add_node(hub_name)

    # Fleet

    def add_drone(self, params: DroneParams, start_position: Vector2) -> int:
        """Create a drone and its network node.

        Returns:
            The new drone's id (its creation index, starting at 0).
        """
        drone_id = len(self._drones)
        self._drones.append(Drone(id=drone_id, params=params, position=start_position))
        self.network.add_node(node_name_for(drone_id))
        logger.debug(
            "Added drone %d at (%.2f, %.2f) mass=%.2f max_thrust=%.2f",
            drone_id,
            start_position.x,
            start_position.y,
            params.mass,
            params.max_thrust,
        )
        return drone_id

    @property
    def drones(self) -> tuple[Drone, ...]:
        """All drones, indexed by id."""
        return tuple(self._drones)

    def get_drone(self, drone_id: int) -> Drone | None:
        """Look up a drone by id; None if out of range."""
        if 0 <= drone_id < len(self._drones):
            return self._drones[drone_id]
        return None

    # Commands

    def set_drone_thrust_direction(self, drone_id: int, direction: Vector2) -> CommandResult:
        """Full thrust along ``direction`` for one drone."""
        return self._command(drone_id, lambda d: d.set_thrust_direction(direction))

    def set_drone_thrust_force(self, drone_id: int, force: Vector2) -> CommandResult:
        """Clamped thrust ``force`` for one drone."""
        return self._command(drone_id, lambda d: d.set_thrust_force(force))

    def clear_drone_thrust(self, drone_id: int) -> CommandResult:
        """Cut one drone's thrust."""
        return self._command(drone_id, lambda d: d.clear_thrust())

    def _command(self, drone_id: int, action: Callable[[Drone], None]) -> CommandResult:
        drone = self.get_drone(drone_id)
        if drone is None:
            logger.debug("Ignoring command for unknown drone id %d", drone_id)
            return CommandResult.INVALID_REFERENCE
        action(drone)
        return CommandResult.OK

    # Clock

    def step(self, dt: float) -> list[DeliveryResult]:
        """Advance the whole simulation by ``dt`` seconds.

        Returns:
            Delivery results from this step's network pass.
        """
        self.time += dt
        self.step_count += 1

        for drone in self._drones:
            drone.update(dt, self.world)

        if self.telemetry_sink is not None:
            for drone in self._drones:
                x, y, vx, vy = drone.telemetry()
                self.telemetry_sink(TelemetryRecord(self.time, drone.id, x, y, vx, vy))

        if self.time >= self.next_report_time:
            self._send_status_reports()
            while self.next_report_time <= self.time:
                self.next_report_time += self.report_interval

        results = self.network.step(self.time)

        # Debug log every 100 steps to avoid log spam
        if self.step_count % 100 == 0:
            logger.debug(
                "Simulation step %d: t=%.3f drones=%d in_flight=%d delivered=%d",
                self.step_count,
                self.time,
                len(self._drones),
                len(self.network.in_transit),
                self.network.delivered_count,
            )
        return results

    def run(self, steps: int, dt: float) -> None:
        """Call ``step(dt)`` ``steps`` times."""
        for _ in range(steps):
            self.step(dt)

    def _send_status_reports(self) -> None:
        for drone in self._drones:
            self.network.send(
                node_name_for(drone.id),
                self.hub_name,
                drone.status_payload(),
                self.time,
            )

    def report_summary(self) -> NetworkSummary:
        """Network statistics as of the current simulation time."""
        return self.network.summary(self.time)
