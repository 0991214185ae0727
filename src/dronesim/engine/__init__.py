"""Simulation engine: XOR cipher, comms network, simulator clock."""

from dronesim.engine.cipher import DEFAULT_KEY, decrypt, encrypt, xor_cipher
from dronesim.engine.network import (
    CommsEvent,
    CommsEventType,
    DeliveryResult,
    DeliveryStatus,
    DuplicateNodeError,
    EventSink,
    InboxEntry,
    Network,
    NetworkSummary,
    NodeInbox,
)
from dronesim.engine.simulator import (
    CommandResult,
    Simulator,
    TelemetryRecord,
    TelemetrySink,
    node_name_for,
)

__all__ = [
    "DEFAULT_KEY",
    "CommandResult",
    "CommsEvent",
    "CommsEventType",
    "DeliveryResult",
    "DeliveryStatus",
    "DuplicateNodeError",
    "EventSink",
    "InboxEntry",
    "Network",
    "NetworkSummary",
    "NodeInbox",
    "Simulator",
    "TelemetryRecord",
    "TelemetrySink",
    "decrypt",
    "encrypt",
    "node_name_for",
    "xor_cipher",
]
