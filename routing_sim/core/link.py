"""Link class for the routing simulation.

This module defines the Link class, which carries packets in one direction
between two adjacent routers after a propagation delay.
"""

from collections import Counter
from typing import TYPE_CHECKING, Any, Generator

import simpy

from routing_sim.core.packet import Packet

if TYPE_CHECKING:
    from routing_sim.core.interface import NetworkInterface


class Link:
    """Represents a one-way network link between nodes.

    Packets on the same link never overtake each other, even when the
    propagation delay is lowered while packets are still in flight.

    Attributes:
        env: SimPy environment.
        source: Source node ID.
        target: Target node ID.
        propagation_delay: Propagation delay in seconds.
        packets_sent: Number of packets handed to this link.
        packets_by_kind: Number of packets sent per packet kind name.
    """

    def __init__(
        self,
        env: simpy.Environment,
        source: int,
        target: int,
        propagation_delay: float,
    ):
        """Initialize a network link.

        Args:
            env: SimPy environment.
            source: Source node ID.
            target: Target node ID.
            propagation_delay: Propagation delay in seconds.
        """
        if propagation_delay <= 0:
            raise ValueError("Propagation delay must be positive.")
        self.env = env
        self.source = source
        self.target = target
        self.propagation_delay = propagation_delay
        self.receiver: "NetworkInterface | None" = None
        self.packets_sent = 0
        self.packets_by_kind: Counter = Counter()
        self._last_arrival = 0.0

    def connect(self, receiver: "NetworkInterface") -> None:
        """Attach the interface of the target node.

        Args:
            receiver: Interface that receives the packets sent on this link.
        """
        if receiver.node_id != self.target:
            raise ValueError("Receiver does not belong to the link's target node.")
        self.receiver = receiver

    def set_propagation_delay(self, delay: float) -> None:
        """Change the propagation delay, used to emulate cost drift.

        Args:
            delay: New propagation delay in seconds.
        """
        if delay <= 0:
            raise ValueError("Propagation delay must be positive.")
        self.propagation_delay = delay

    def transmit(self, packet: Any) -> simpy.events.Process:
        """Start the asynchronous delivery of a packet.

        Args:
            packet: The packet to deliver to the target node.

        Returns:
            SimPy process for the delivery.
        """
        if self.receiver is None:
            raise ValueError(f"{self!r} is not connected to a receiver.")
        self.packets_sent += 1
        kind = packet.kind.name if isinstance(packet, Packet) else type(packet).__name__
        self.packets_by_kind[kind] += 1

        arrival = max(self.env.now + self.propagation_delay, self._last_arrival)
        self._last_arrival = arrival
        return self.env.process(self._deliver(packet, arrival - self.env.now))

    def _deliver(self, packet: Any, delay: float) -> Generator[Any, Any, None]:
        yield self.env.timeout(delay)
        self.receiver.receive(self.source, packet)

    def __repr__(self) -> str:
        """Return string representation of the link.

        Returns:
            String representation of the link.
        """
        return f"Link({self.source}->{self.target}, {self.propagation_delay*1000:.1f}ms)"
