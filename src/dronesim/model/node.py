"""Node: a named comms endpoint with an append-only inbox."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReceivedRecord:
    """One delivered message as seen by the receiving node."""

    message_id: int
    sender: str
    payload: str  # decrypted plaintext
    time_received: float
    latency: float


@dataclass
class Node:
    """A network endpoint. One per drone plus the hub.

    The inbox only grows; records keep arrival order and are never deduplicated.
    """

    name: str
    inbox: list[ReceivedRecord] = field(default_factory=list)

    def receive(
        self,
        message_id: int,
        sender: str,
        payload: str,
        time_received: float,
        latency: float,
    ) -> ReceivedRecord:
        record = ReceivedRecord(
            message_id=message_id,
            sender=sender,
            payload=payload,
            time_received=time_received,
            latency=latency,
        )
        self.inbox.append(record)
        return record
