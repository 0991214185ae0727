"""Drone: a point mass with bounded thrust moving under gravity.

Physics per ``update`` call (semi-implicit Euler):

1. total force = thrust + gravity * mass
2. acceleration = total force / mass
3. velocity += acceleration * dt, then clamp to max_speed (if set)
4. position += velocity * dt
5. each axis that leaves the world box is clamped to the wall and its
   velocity component is zeroed (inelastic stop, no bounce)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dronesim.model.vector import ZERO, Vector2

if TYPE_CHECKING:
    from dronesim.model.world import World


@dataclass(frozen=True)
class DroneParams:
    """Physical limits of a drone. Immutable once the drone exists."""

    mass: float  # kg, must be > 0 (not validated; 0 raises in Drone.update)
    max_thrust: float  # N
    max_speed: float = 0.0  # m/s, 0 = no speed limit


@dataclass
class Drone:
    """A simulated drone. Created by the Simulator; id is its creation index."""

    id: int
    params: DroneParams
    position: Vector2 = field(default=ZERO)
    velocity: Vector2 = field(default=ZERO)
    thrust: Vector2 = field(default=ZERO)

    def set_thrust_direction(self, direction: Vector2) -> None:
        """Point full thrust along ``direction``. A zero direction means no thrust."""
        self.thrust = direction.normalized() * self.params.max_thrust

    def set_thrust_force(self, force: Vector2) -> None:
        """Apply ``force`` as thrust, clamped to ``max_thrust`` with direction kept."""
        self.thrust = force.clamp(self.params.max_thrust)

    def clear_thrust(self) -> None:
        """Remove all thrust, leaving gravity as the only force."""
        self.thrust = ZERO

    def update(self, dt: float, world: World) -> None:
        """Advance this drone by ``dt`` seconds inside ``world``.

        Mass is not validated. A zero mass makes the acceleration division
        raise ``ZeroDivisionError``; Python floats do not yield a silent
        infinity here.
        """
        total_force = self.thrust + world.gravity * self.params.mass
        acceleration = total_force * (1.0 / self.params.mass)

        velocity = self.velocity + acceleration * dt
        if self.params.max_speed > 0.0:
            velocity = velocity.clamp(self.params.max_speed)

        position = self.position + velocity * dt

        x, vx = _clamp_axis(position.x, velocity.x, world.width)
        y, vy = _clamp_axis(position.y, velocity.y, world.height)

        self.position = Vector2(x, y)
        self.velocity = Vector2(vx, vy)

    def status_payload(self) -> str:
        """Status report text sent to the hub, two decimals per component."""
        return (
            f"STATUS pos=({self.position.x:.2f},{self.position.y:.2f}) "
            f"vel=({self.velocity.x:.2f},{self.velocity.y:.2f})"
        )

    def telemetry(self) -> tuple[float, float, float, float]:
        """(x, y, vx, vy) snapshot."""
        return (self.position.x, self.position.y, self.velocity.x, self.velocity.y)


def _clamp_axis(position: float, velocity: float, extent: float) -> tuple[float, float]:
    if position < 0.0:
        return 0.0, 0.0
    if position > extent:
        return extent, 0.0
    return position, velocity
