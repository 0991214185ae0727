"""Domain model: Vector2, World, DroneParams, Drone, Node, ReceivedRecord, Message."""

from dronesim.model.drone import Drone, DroneParams
from dronesim.model.message import Message
from dronesim.model.node import Node, ReceivedRecord
from dronesim.model.vector import ZERO, Vector2
from dronesim.model.world import EARTH_GRAVITY, World

__all__ = [
    "EARTH_GRAVITY",
    "ZERO",
    "Drone",
    "DroneParams",
    "Message",
    "Node",
    "ReceivedRecord",
    "Vector2",
    "World",
]
