"""Message dataclass: one unit of traffic on the comms network."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Message:
    """A message between two named nodes.

    ``payload`` is the plaintext used at the endpoints; ``cipher_text`` is what
    travels "on the wire". A message lives either in the network's in-transit
    list or in its dropped list. Once delivered it is handed to the receiving
    node and no longer held by the network.
    """

    id: int
    sender: str
    recipient: str
    payload: str
    cipher_text: bytes
    send_time: float
    deliver_time: float

    # Lifecycle
    delivered: bool = False
    dropped: bool = False

    @property
    def latency(self) -> float:
        """Scheduled transit time (deliver_time - send_time)."""
        return self.deliver_time - self.send_time
