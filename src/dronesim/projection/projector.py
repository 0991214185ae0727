"""Frame projector: simulator state or telemetry rows to renderable frames.

World coordinates (meters, y up) are scaled into a pixel viewport (y down).
A Frame holds one marker per drone plus network counters, so a renderer
only needs to draw what it is given.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from itertools import groupby
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dronesim.engine.simulator import Simulator, TelemetryRecord
    from dronesim.model.world import World


@dataclass(frozen=True)
class Viewport:
    """Pixel area the world is drawn into."""

    width: float = 600.0
    height: float = 600.0

    def to_screen(self, x: float, y: float, world: World) -> tuple[float, float]:
        """Map world meters to pixels, flipping y so that up is up."""
        sx = x / world.width * self.width
        sy = self.height - y / world.height * self.height
        return sx, sy


DEFAULT_VIEWPORT = Viewport()


@dataclass
class DroneVisual:
    """A drone marker for rendering."""

    id: int

    # Screen position
    x: float
    y: float

    # World state, for tooltips
    world_x: float
    world_y: float
    vx: float
    vy: float

    # Visual properties
    color: str = "#1f77b4"
    radius: float = 6.0


@dataclass
class Frame:
    """A complete visual frame for one simulation time."""

    time: float
    drones: list[DroneVisual] = field(default_factory=list)

    # Comms counters (zero when projected from telemetry alone)
    in_flight: int = 0
    delivered: int = 0
    dropped: int = 0


# Marker palette, cycled by drone id
DRONE_COLORS: tuple[str, ...] = (
    "#1f77b4",  # Blue
    "#ff7f0e",  # Orange
    "#2ca02c",  # Green
    "#d62728",  # Red
    "#9467bd",  # Purple
    "#8c564b",  # Brown
    "#e377c2",  # Pink
    "#17becf",  # Cyan
)


def color_for(drone_id: int) -> str:
    return DRONE_COLORS[drone_id % len(DRONE_COLORS)]


def _visual(
    drone_id: int,
    x: float,
    y: float,
    vx: float,
    vy: float,
    world: World,
    viewport: Viewport,
) -> DroneVisual:
    sx, sy = viewport.to_screen(x, y, world)
    return DroneVisual(
        id=drone_id,
        x=sx,
        y=sy,
        world_x=x,
        world_y=y,
        vx=vx,
        vy=vy,
        color=color_for(drone_id),
    )


def project(simulator: Simulator, viewport: Viewport = DEFAULT_VIEWPORT) -> Frame:
    """Project the simulator's current state into a Frame.

    Args:
        simulator: The running simulator
        viewport: Target pixel area

    Returns:
        Frame with one DroneVisual per drone and current network counters
    """
    frame = Frame(
        time=simulator.time,
        in_flight=len(simulator.network.in_transit),
        delivered=simulator.network.delivered_count,
        dropped=len(simulator.network.dropped_messages),
    )
    for drone in simulator.drones:
        x, y, vx, vy = drone.telemetry()
        frame.drones.append(_visual(drone.id, x, y, vx, vy, simulator.world, viewport))
    return frame


def frames_from_telemetry(
    records: Iterable[TelemetryRecord],
    world: World,
    viewport: Viewport = DEFAULT_VIEWPORT,
) -> list[Frame]:
    """Group telemetry rows that share a time value into frames.

    Rows may arrive in any order; frames come back sorted by time and drones
    within a frame sorted by id.
    """
    ordered = sorted(records, key=lambda r: (r.time, r.drone_id))
    frames = []
    for time, group in groupby(ordered, key=lambda r: r.time):
        frame = Frame(time=time)
        for rec in group:
            frame.drones.append(
                _visual(rec.drone_id, rec.x, rec.y, rec.vx, rec.vy, world, viewport)
            )
        frames.append(frame)
    return frames
