"""Neighbor cost discovery for the routing simulation.

A LinkProbe pings every directly connected neighbor and turns the echoed
timestamps into link costs. Only the most recent measurement is kept; a
neighbor that never answered is absent from the table, which the routing
engines read as "not routable through this link yet".
"""

import logging
from typing import Callable, Dict, Mapping, Optional

from routing_sim.core.interface import NetworkInterface
from routing_sim.core.packet import Packet, ping_probe, pong_reply


class LinkProbe:
    """Measures the round-trip time to each neighbor.

    Attributes:
        node_id: ID of the owning router.
        interface: Network interface of the owning router.
        clock: Returns the current time.
        halve_rtt: Store half the round-trip time as the cost.
        probes_sent: Number of pings sent so far.
    """

    def __init__(
        self,
        node_id: int,
        interface: NetworkInterface,
        clock: Callable[[], float],
        halve_rtt: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.node_id = node_id
        self.interface = interface
        self.clock = clock
        self.halve_rtt = halve_rtt
        self.logger = logger or logging.getLogger(__name__)
        self.probes_sent = 0
        self._costs: Dict[int, float] = {}

    @property
    def costs(self) -> Mapping[int, float]:
        """Current neighbor cost table. Treat as read-only."""
        return self._costs

    def snapshot(self) -> Dict[int, float]:
        """Copy of the neighbor cost table for one computation cycle."""
        return dict(self._costs)

    def probe_all(self) -> None:
        """Send a timestamped ping on every outgoing link."""
        now = self.clock()
        for index, neighbor in enumerate(self.interface.outgoing_links()):
            self.interface.send_on_link(index, ping_probe(self.node_id, neighbor, now))
            self.probes_sent += 1

    def handle_ping(self, packet: Packet) -> None:
        """Answer a ping with a pong carrying the same timestamp."""
        index = self.interface.link_index(packet.source)
        if index is None:
            self.logger.warning(
                "Node %s: ping from non-neighbor %s dropped", self.node_id, packet.source
            )
            return
        self.interface.send_on_link(
            index, pong_reply(self.node_id, packet.source, packet.timestamp)
        )

    def handle_pong(self, packet: Packet) -> Optional[float]:
        """Record the cost measured by a pong.

        Args:
            packet: The pong received.

        Returns:
            The recorded cost, or None if the pong was ignored.
        """
        if self.interface.link_index(packet.source) is None:
            self.logger.warning(
                "Node %s: pong from non-neighbor %s ignored", self.node_id, packet.source
            )
            return None
        cost = self.clock() - packet.timestamp
        if self.halve_rtt:
            cost /= 2
        self._costs[packet.source] = cost
        self.logger.debug("Cost(%s, %s) = %.6f", self.node_id, packet.source, cost)
        return cost
