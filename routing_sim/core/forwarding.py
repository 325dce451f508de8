"""Packet forwarding for the routing simulation.

The forwarder moves a data packet one hop closer to its destination using
whatever routing table the active engine currently publishes.
"""

import logging
from typing import Callable, Mapping, Optional

from routing_sim.core.enums import ForwardOutcome
from routing_sim.core.interface import NetworkInterface
from routing_sim.core.packet import Packet


class PacketForwarder:
    """Delivers, forwards or drops data packets for one router."""

    def __init__(
        self,
        node_id: int,
        interface: NetworkInterface,
        routes: Callable[[], Mapping[int, Optional[int]]],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the forwarder.

        Args:
            node_id: ID of the owning router.
            interface: Network interface of the owning router.
            routes: Returns the current destination to next hop table.
            logger: Diagnostics logger.
        """
        self.node_id = node_id
        self.interface = interface
        self.routes = routes
        self.logger = logger or logging.getLogger(__name__)

    def forward(self, packet: Packet) -> ForwardOutcome:
        """Deliver the packet here or send it toward its next hop.

        Args:
            packet: The data packet to handle.

        Returns:
            What happened to the packet at this router.
        """
        if packet.destination == self.node_id:
            self.interface.report_arrival(packet.payload)
            self.logger.debug(
                "Node %s: delivered packet from %s", self.node_id, packet.source
            )
            return ForwardOutcome.DELIVERED

        packet = packet.decrement_hop_budget()
        if packet.hop_budget < 0:
            self.logger.warning(
                "Node %s: too many hops, dropping packet %s->%s",
                self.node_id,
                packet.source,
                packet.destination,
            )
            return ForwardOutcome.HOP_LIMIT

        next_hop = self.routes().get(packet.destination)
        index = None if next_hop is None else self.interface.link_index(next_hop)
        if index is None:
            self.logger.warning(
                "Node %s: no route to %s, dropping packet from %s",
                self.node_id,
                packet.destination,
                packet.source,
            )
            return ForwardOutcome.NO_ROUTE

        self.interface.send_on_link(index, packet)
        return ForwardOutcome.FORWARDED
