"""Vector2: immutable 2D vector used for positions, velocities and forces."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Vector2:
    """A 2D vector value. Every operation returns a new vector."""

    x: float = 0.0
    y: float = 0.0

    def add(self, other: Vector2) -> Vector2:
        """Component-wise sum."""
        return Vector2(self.x + other.x, self.y + other.y)

    def subtract(self, other: Vector2) -> Vector2:
        """Component-wise difference."""
        return Vector2(self.x - other.x, self.y - other.y)

    def scale(self, scalar: float) -> Vector2:
        """Multiply both components by a scalar."""
        return Vector2(self.x * scalar, self.y * scalar)

    def length(self) -> float:
        """Euclidean length."""
        return math.sqrt(self.x * self.x + self.y * self.y)

    def normalized(self) -> Vector2:
        """Unit vector in the same direction.

        The zero vector normalizes to the zero vector instead of dividing by zero.
        """
        length = self.length()
        if length == 0.0:
            return Vector2()
        return Vector2(self.x / length, self.y / length)

    def clamp(self, max_length: float) -> Vector2:
        """Rescale to exactly ``max_length`` if longer, otherwise return self."""
        length = self.length()
        if length > max_length and length > 0:
            return self.scale(max_length / length)
        return self

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)

    def __add__(self, other: Vector2) -> Vector2:
        return self.add(other)

    def __sub__(self, other: Vector2) -> Vector2:
        return self.subtract(other)

    def __mul__(self, scalar: float) -> Vector2:
        return self.scale(scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vector2:
        return Vector2(-self.x, -self.y)


ZERO = Vector2()
