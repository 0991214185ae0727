"""Comms network: delayed, jittered, lossy message transport between nodes.

Every ``send`` gets an id, is XOR-encrypted for the wire, and is classified
once as either in flight or dropped. Both kinds are scheduled a delivery time
of ``send_time + base_latency + U(-jitter, +jitter)`` (never earlier than the
send time), but only in-flight messages are ever delivered.

``step(current_time)`` delivers, in one pass, every in-flight message whose
delivery time has come. Delivery decrypts the payload, appends a record to
the recipient's inbox and updates the running latency statistics.

Lifecycle events (send, drop_scheduled, deliver) go to an optional event
sink, e.g. ``dronesim.recorders.CommsLogWriter``, and are also narrated on
this module's logger.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, Field

from dronesim.engine.cipher import DEFAULT_KEY, decrypt, encrypt
from dronesim.model.message import Message
from dronesim.model.node import Node, ReceivedRecord

logger = logging.getLogger(__name__)


class CommsEventType(StrEnum):
    """Lifecycle events written to the comms log."""

    SEND = "send"
    DROP_SCHEDULED = "drop_scheduled"
    DELIVER = "deliver"


@dataclass(frozen=True)
class CommsEvent:
    """One row of the comms log.

    ``latency`` is 0.0 until delivery. ``payload`` is always the plaintext.
    """

    event: CommsEventType
    time: float
    message_id: int
    sender: str
    recipient: str
    latency: float
    dropped: bool
    payload: str


EventSink = Callable[[CommsEvent], None]


class DeliveryStatus(StrEnum):
    """Outcome of trying to hand a due message to its recipient."""

    DELIVERED = "delivered"
    UNKNOWN_ENDPOINT = "unknown_endpoint"


@dataclass(frozen=True)
class DeliveryResult:
    """What happened to one due message during ``Network.step``."""

    message: Message
    status: DeliveryStatus
    record: ReceivedRecord | None = None


class DuplicateNodeError(ValueError):
    """Raised when registering a node name that is already taken."""


class InboxEntry(BaseModel):
    """One received message in a summary dump."""

    message_id: int = Field(description="Message id")
    sender: str = Field(description="Sending node")
    payload: str = Field(description="Decrypted payload")
    time_received: float = Field(description="Delivery time (s)")
    latency: float = Field(description="Transit time (s)")


class NodeInbox(BaseModel):
    """A node and everything it has received."""

    name: str = Field(description="Node name")
    messages: list[InboxEntry] = Field(default_factory=list, description="Inbox contents")


class NetworkSummary(BaseModel):
    """End-of-run (or any-time) network statistics."""

    final_time: float = Field(description="Simulation time of the summary")
    delivered_count: int = Field(description="Messages delivered")
    dropped_count: int = Field(description="Messages lost in transit")
    undeliverable_count: int = Field(default=0, description="Messages for unknown nodes")
    in_flight_count: int = Field(default=0, description="Messages not yet due")
    total_latency: float = Field(default=0.0, description="Sum of delivered latencies (s)")
    average_latency: float | None = Field(
        default=None, description="Mean delivered latency (s); None if nothing delivered"
    )
    nodes: list[NodeInbox] = Field(default_factory=list, description="Per-node inboxes")

    def format_summary(self) -> str:
        """Render the human readable end-of-run report."""
        lines = [
            f"=== Simulation Summary (t={self.final_time:.3f}) ===",
            f"Delivered messages: {self.delivered_count}",
            f"Dropped messages:   {self.dropped_count}",
        ]
        if self.undeliverable_count:
            lines.append(f"Undeliverable:      {self.undeliverable_count}")
        if self.average_latency is not None:
            lines.append(f"Average latency:    {self.average_latency:.3f} s")
        lines.append("")
        lines.append("Per-node inbox contents:")
        for node in self.nodes:
            lines.append(f"Node {node.name}:")
            for entry in node.messages:
                lines.append(
                    f"  at t={entry.time_received:.3f}"
                    f"  from={entry.sender}"
                    f"  id={entry.message_id}"
                    f"  latency={entry.latency:.3f}"
                    f'  payload="{entry.payload}"'
                )
        return "\n".join(lines)


class Network:
    """Single-hop message transport with latency, jitter, loss and XOR encryption.

    The network owns its nodes, its message lists and its random source. It
    is not thread-safe; callers that step it from several threads must
    serialize access (see ``dronesim.server.app.SimulationState``).

    Example:
        >>> net = Network(base_latency=0.5, jitter=0.0, drop_probability=0.0)
        >>> _ = net.add_node("A"); _ = net.add_node("B")
        >>> _ = net.send("A", "B", "hello", current_time=0.0)
        >>> net.step(0.5)[0].status
        <DeliveryStatus.DELIVERED: 'delivered'>
    """

    def __init__(
        self,
        base_latency: float = 0.5,
        jitter: float = 0.2,
        drop_probability: float = 0.15,
        key: str | bytes = DEFAULT_KEY,
        rng: random.Random | None = None,
        seed: int | None = None,
        event_sink: EventSink | None = None,
    ) -> None:
        """Initialize the network.

        Args:
            base_latency: Mean one-way latency in seconds (>= 0).
            jitter: Half-width of the uniform latency noise in seconds (>= 0).
            drop_probability: Chance in [0, 1] that a message is lost.
            key: Shared XOR key (non-empty).
            rng: Random source. Takes precedence over ``seed``.
            seed: Seed for a private ``random.Random`` when ``rng`` is None.
            event_sink: Callable receiving every CommsEvent.

        Raises:
            ValueError: If any parameter is out of range.
        """
        if base_latency < 0:
            raise ValueError(f"base_latency must be >= 0, got {base_latency}")
        if jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {jitter}")
        if not 0.0 <= drop_probability <= 1.0:
            raise ValueError(f"drop_probability must be in [0, 1], got {drop_probability}")
        if not key:
            raise ValueError("key must not be empty")

        self.base_latency = base_latency
        self.jitter = jitter
        self.drop_probability = drop_probability
        self._key = key
        self._rng = rng if rng is not None else random.Random(seed)
        self.event_sink = event_sink

        self._nodes: dict[str, Node] = {}
        self._in_transit: list[Message] = []
        self._dropped: list[Message] = []
        self._next_message_id = 1
        self._delivered_count = 0
        self._undeliverable_count = 0
        self._total_latency = 0.0

    # Nodes

    def add_node(self, name: str) -> Node:
        """Register a new node.

        Raises:
            DuplicateNodeError: If ``name`` is already registered.
        """
        if name in self._nodes:
            raise DuplicateNodeError(f"Node already registered: {name}")
        node = Node(name=name)
        self._nodes[name] = node
        logger.debug("Registered node %s", name)
        return node

    def get_node(self, name: str) -> Node | None:
        """Look up a node by name; None if unknown."""
        return self._nodes.get(name)

    @property
    def nodes(self) -> list[Node]:
        """Registered nodes in registration order."""
        return list(self._nodes.values())

    # Traffic

    def send(self, sender: str, recipient: str, payload: str, current_time: float) -> Message:
        """Schedule ``payload`` from ``sender`` to ``recipient`` at ``current_time``.

        The recipient is not checked here; unknown recipients are discovered
        at delivery time.

        Returns:
            The scheduled Message (in flight or dropped).
        """
        message_id = self._next_message_id
        self._next_message_id += 1

        cipher_text = encrypt(payload, self._key)
        dropped = self._rng.random() < self.drop_probability

        message = Message(
            id=message_id,
            sender=sender,
            recipient=recipient,
            payload=payload,
            cipher_text=cipher_text,
            send_time=current_time,
            deliver_time=current_time + self._sample_latency(),
            dropped=dropped,
        )

        if dropped:
            self._dropped.append(message)
            event_type = CommsEventType.DROP_SCHEDULED
            label = "DROP SCHEDULED"
        else:
            self._in_transit.append(message)
            event_type = CommsEventType.SEND
            label = "SEND"

        logger.info(
            "[%s] %s -> %s  msgId=%d  payload=<ENCRYPTED len=%d>",
            label,
            sender,
            recipient,
            message_id,
            len(cipher_text),
            extra={"sim_time": current_time},
        )
        self._emit(
            CommsEvent(
                event=event_type,
                time=current_time,
                message_id=message_id,
                sender=sender,
                recipient=recipient,
                latency=0.0,
                dropped=dropped,
                payload=payload,
            )
        )
        return message

    def step(self, current_time: float) -> list[DeliveryResult]:
        """Deliver every in-flight message due at or before ``current_time``.

        Messages not yet due stay in flight, in their original order. If the
        event sink raises partway through a batch, the exception propagates;
        messages already handed over leave the network and the rest of the
        batch stays in flight for the next step.

        Returns:
            One DeliveryResult per due message, in delivery order.
        """
        results: list[DeliveryResult] = []
        handled: set[int] = set()
        try:
            for message in self._in_transit:
                if message.deliver_time <= current_time:
                    results.append(self._deliver(message, current_time))
                    handled.add(message.id)
        finally:
            # A message counts as handed over once it reached an inbox, even if
            # emitting its deliver event failed afterwards
            self._in_transit = [
                m for m in self._in_transit if m.id not in handled and not m.delivered
            ]
        return results

    def _deliver(self, message: Message, current_time: float) -> DeliveryResult:
        node = self._nodes.get(message.recipient)
        if node is None:
            self._undeliverable_count += 1
            logger.warning(
                "[DELIVERY FAILED] unknown node %s for msgId=%d",
                message.recipient,
                message.id,
                extra={"sim_time": current_time},
            )
            return DeliveryResult(message=message, status=DeliveryStatus.UNKNOWN_ENDPOINT)

        latency = message.latency
        self._delivered_count += 1
        self._total_latency += latency

        plaintext = decrypt(message.cipher_text, self._key)
        record = node.receive(
            message_id=message.id,
            sender=message.sender,
            payload=plaintext,
            time_received=message.deliver_time,
            latency=latency,
        )
        message.delivered = True

        logger.info(
            '[DELIVER] %s -> %s  msgId=%d  latency=%.3f  payload="%s"',
            message.sender,
            message.recipient,
            message.id,
            latency,
            plaintext,
            extra={"sim_time": current_time},
        )
        self._emit(
            CommsEvent(
                event=CommsEventType.DELIVER,
                time=current_time,
                message_id=message.id,
                sender=message.sender,
                recipient=message.recipient,
                latency=latency,
                dropped=False,
                payload=plaintext,
            )
        )
        return DeliveryResult(message=message, status=DeliveryStatus.DELIVERED, record=record)

    def _sample_latency(self) -> float:
        # Negative jitter larger than the base latency would deliver into the past
        return max(0.0, self.base_latency + self._rng.uniform(-self.jitter, self.jitter))

    def _emit(self, event: CommsEvent) -> None:
        if self.event_sink is not None:
            self.event_sink(event)

    # Statistics

    @property
    def in_transit(self) -> list[Message]:
        """Messages scheduled but not yet delivered (copy)."""
        return list(self._in_transit)

    @property
    def dropped_messages(self) -> list[Message]:
        """Messages lost in transit (copy)."""
        return list(self._dropped)

    @property
    def delivered_count(self) -> int:
        return self._delivered_count

    @property
    def undeliverable_count(self) -> int:
        return self._undeliverable_count

    @property
    def total_latency(self) -> float:
        return self._total_latency

    @property
    def average_latency(self) -> float | None:
        """Mean latency of delivered messages, None before the first delivery."""
        if self._delivered_count == 0:
            return None
        return self._total_latency / self._delivered_count

    def summary(self, final_time: float) -> NetworkSummary:
        """Snapshot the counters and every node's inbox."""
        return NetworkSummary(
            final_time=final_time,
            delivered_count=self._delivered_count,
            dropped_count=len(self._dropped),
            undeliverable_count=self._undeliverable_count,
            in_flight_count=len(self._in_transit),
            total_latency=self._total_latency,
            average_latency=self.average_latency,
            nodes=[
                NodeInbox(
                    name=node.name,
                    messages=[
                        InboxEntry(
                            message_id=rec.message_id,
                            sender=rec.sender,
                            payload=rec.payload,
                            time_received=rec.time_received,
                            latency=rec.latency,
                        )
                        for rec in node.inbox
                    ],
                )
                for node in self._nodes.values()
            ],
        )
