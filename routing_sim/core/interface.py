"""Network interface of a simulated router.

This module defines NetworkInterface, the only object through which a router
reaches the outside world: its outgoing links, the queue of locally
originated traffic, the queue of packets received from neighbors and the
accounting of delivered payloads.
"""

from collections import deque
from typing import Any, Callable, Deque, List, Optional, Tuple

import simpy

from routing_sim.core.link import Link


class NetworkInterface:
    """Represents the link substrate and traffic source seen by one router.

    Attributes:
        env: SimPy environment.
        node_id: ID of the router owning this interface.
        links: Outgoing links, in link index order.
        arrivals: Payloads of the data packets delivered to this router.
    """

    def __init__(
        self,
        env: simpy.Environment,
        node_id: int,
        on_arrival: Optional[Callable[[int, Any], None]] = None,
    ) -> None:
        """Initialize the interface.

        Args:
            env: SimPy environment.
            node_id: ID of the router owning this interface.
            on_arrival: Called with (node_id, payload) for every delivered payload.
        """
        self.env = env
        self.node_id = node_id
        self.on_arrival = on_arrival
        self.links: List[Link] = []
        self.arrivals: List[Any] = []
        self._outbound: Deque[Tuple[int, Any]] = deque()
        self._inbound: Deque[Tuple[int, Any]] = deque()
        self._activity = env.event()

    def attach(self, link: Link) -> None:
        """Add an outgoing link.

        Args:
            link: The link to add, whose source must be this router.
        """
        if link.source != self.node_id or link.target == self.node_id:
            raise ValueError("Link source or target is incorrect for this interface.")
        if link.target in self.outgoing_links():
            raise ValueError(f"Node {self.node_id} already has a link to {link.target}.")
        self.links.append(link)

    def outgoing_links(self) -> List[int]:
        """Neighbor IDs in link index order."""
        return [link.target for link in self.links]

    def link_index(self, neighbor: int) -> Optional[int]:
        """Index of the link toward neighbor, or None if it is not adjacent."""
        for index, link in enumerate(self.links):
            if link.target == neighbor:
                return index
        return None

    def send_on_link(self, index: int, packet: Any) -> None:
        """Hand a packet to the link at the given index without blocking.

        Args:
            index: Link index, as ordered by outgoing_links().
            packet: The packet to send.
        """
        self.links[index].transmit(packet)

    def transmit(self, destination: int, payload: Any) -> None:
        """Queue locally originated traffic for the router.

        Args:
            destination: Destination node ID.
            payload: Application data.
        """
        self._outbound.append((destination, payload))
        self._notify()

    def poll_outbound_traffic(self) -> Optional[Tuple[int, Any]]:
        """Pop the oldest (destination, payload) awaiting transmission, if any."""
        if self._outbound:
            return self._outbound.popleft()
        return None

    def receive(self, originator: int, packet: Any) -> None:
        """Queue a packet delivered by a link.

        Args:
            originator: Node ID of the neighbor the packet came from.
            packet: The received packet.
        """
        self._inbound.append((originator, packet))
        self._notify()

    def poll_inbound_packet(self) -> Optional[Tuple[int, Any]]:
        """Pop the oldest (originator, packet) received, if any."""
        if self._inbound:
            return self._inbound.popleft()
        return None

    def report_arrival(self, payload: Any) -> None:
        """Record that a data packet reached this router.

        Args:
            payload: The payload of the delivered packet.
        """
        self.arrivals.append(payload)
        if self.on_arrival is not None:
            self.on_arrival(self.node_id, payload)

    def activity(self) -> simpy.Event:
        """Event that fires the next time either queue receives an item."""
        if self._activity.triggered:
            self._activity = self.env.event()
        return self._activity

    def _notify(self) -> None:
        if not self._activity.triggered:
            self._activity.succeed()

    def __repr__(self) -> str:
        return f"NetworkInterface({self.node_id}, links={self.outgoing_links()})"
