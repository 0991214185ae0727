"""Shared fixtures."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator

import pytest

from dronesim.engine.network import CommsEvent, Network
from dronesim.model import DroneParams, Vector2, World


@pytest.fixture(autouse=True)
def restore_dronesim_logger() -> Iterator[None]:
    """Undo configure_logging() so caplog keeps seeing dronesim records."""
    logger = logging.getLogger("dronesim")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def world() -> World:
    """Default world: Earth gravity, 100 x 100 m."""
    return World()


@pytest.fixture
def params() -> DroneParams:
    """1 kg drone, 10 N thrust, no speed limit."""
    return DroneParams(mass=1.0, max_thrust=10.0, max_speed=0.0)


@pytest.fixture
def rng() -> random.Random:
    """Reproducible random number generator."""
    return random.Random(42)


@pytest.fixture
def events() -> list[CommsEvent]:
    """Collects CommsEvents when passed as a network event sink."""
    return []


@pytest.fixture
def perfect_network(events: list[CommsEvent]) -> Network:
    """0.5 s latency, no jitter, no loss; nodes A and B registered."""
    net = Network(base_latency=0.5, jitter=0.0, drop_probability=0.0, event_sink=events.append)
    net.add_node("A")
    net.add_node("B")
    return net


@pytest.fixture
def origin() -> Vector2:
    return Vector2(50.0, 50.0)
