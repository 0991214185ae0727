"""Projection layer: simulator state and telemetry to renderable frames."""

from dronesim.projection.projector import (
    DEFAULT_VIEWPORT,
    DroneVisual,
    Frame,
    Viewport,
    frames_from_telemetry,
    project,
)

__all__ = [
    "DEFAULT_VIEWPORT",
    "DroneVisual",
    "Frame",
    "Viewport",
    "frames_from_telemetry",
    "project",
]
