"""World dataclass: global physical parameters shared by every drone."""

from __future__ import annotations

from dataclasses import dataclass, field

from dronesim.model.vector import Vector2

EARTH_GRAVITY = Vector2(0.0, -9.8)


@dataclass(frozen=True)
class World:
    """Gravity and the bounding box of the simulated airspace.

    The World only stores values; boundary enforcement happens in
    ``Drone.update``. One instance is shared by reference across all drones.
    """

    gravity: Vector2 = field(default=EARTH_GRAVITY)  # m/s^2
    width: float = 100.0  # meters, x in [0, width]
    height: float = 100.0  # meters, y in [0, height]
