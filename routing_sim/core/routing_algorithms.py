"""Routing engines for the routing simulation.

Both engines run once per discovery cycle: they probe the neighbors, compute a
fresh routing table from a snapshot of what they know and swap it in whole.
The distance-vector engine only talks to direct neighbors; the link-state
engine floods its cost table to every router and runs Dijkstra locally.
"""

from abc import ABC, abstractmethod
from collections import Counter
import heapq
import logging
from typing import Dict, Mapping, Optional, Tuple, Union

from routing_sim.core.enums import PacketKind, RoutingAlgorithm
from routing_sim.core.interface import NetworkInterface
from routing_sim.core.packet import (
    Packet,
    distance_table_advertisement,
    link_state_advertisement,
)
from routing_sim.core.probe import LinkProbe

RoutingTable = Dict[int, Optional[int]]


class IncompleteTopologyError(Exception):
    """Raised when the link-state table lacks a router reached by the search."""

    def __init__(self, node_id: int) -> None:
        super().__init__(f"No link-state entry for node {node_id}")
        self.node_id = node_id


class RoutingEngine(ABC):
    """Abstract base class for route computation engines."""

    kind: PacketKind

    def __init__(
        self,
        node_id: int,
        interface: NetworkInterface,
        probe: LinkProbe,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            node_id: ID of the owning router.
            interface: Network interface of the owning router.
            probe: Cost discovery of the owning router.
            logger: Diagnostics logger.
        """
        self.name = "Base Engine"
        self.node_id = node_id
        self.interface = interface
        self.probe = probe
        self.logger = logger or logging.getLogger(__name__)
        self.routing_table: RoutingTable = {node_id: None}
        self.distances: Dict[int, float] = {node_id: 0.0}

    def run_cycle(self) -> bool:
        """
        Run one discovery cycle.

        Returns:
            True if the routing table changed.
        """
        self.probe.probe_all()
        return self._cycle()

    @abstractmethod
    def _cycle(self) -> bool:
        """Compute and publish routes after the probes went out."""

    @abstractmethod
    def handle_advertisement(self, originator: int, packet: Packet) -> None:
        """
        Process a routing advertisement of this engine's kind.

        Args:
            originator: Neighbor the packet came from.
            packet: The advertisement.
        """

    def _install(self, routing_table: RoutingTable, distances: Dict[int, float]) -> bool:
        changed = routing_table != self.routing_table
        self.routing_table = routing_table
        self.distances = distances
        return changed

    def __repr__(self) -> str:
        return self.name


class DistanceVectorEngine(RoutingEngine):
    """Bellman-Ford relaxation over the tables advertised by direct neighbors."""

    kind = PacketKind.DISTANCE_TABLE

    def __init__(
        self,
        node_id: int,
        interface: NetworkInterface,
        probe: LinkProbe,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(node_id, interface, probe, logger)
        self.name = "DV"
        # latest distance table received from each neighbor
        self.advertisements: Dict[int, Dict[int, float]] = {}

    def _cycle(self) -> bool:
        changed = self.compute()
        self.publish()
        return changed

    def relax(
        self,
        costs: Mapping[int, float],
        advertisements: Mapping[int, Mapping[int, float]],
    ) -> Tuple[RoutingTable, Dict[int, float]]:
        """
        Derive routes from neighbor costs and neighbor distance tables.

        Neighbors are considered in link order and a route is only replaced
        by a strictly shorter one, so ties keep the incumbent.

        Args:
            costs: Measured cost of each neighbor.
            advertisements: Distance table advertised by each neighbor.

        Returns:
            The destination to next hop table and the destination to distance table.
        """
        distances: Dict[int, float] = {self.node_id: 0.0}
        next_hops: RoutingTable = {self.node_id: None}

        for neighbor in self.interface.outgoing_links():
            if neighbor not in costs or neighbor not in advertisements:
                continue
            link_cost = costs[neighbor]
            for destination, distance in advertisements[neighbor].items():
                candidate = link_cost + distance
                if destination not in distances or candidate < distances[destination]:
                    distances[destination] = candidate
                    next_hops[destination] = neighbor

        return next_hops, distances

    def compute(self) -> bool:
        """
        Recompute the routing table from snapshots of the current inputs.

        Returns:
            True if the routing table changed.
        """
        advertisements = {n: dict(t) for n, t in self.advertisements.items()}
        next_hops, distances = self.relax(self.probe.snapshot(), advertisements)
        return self._install(next_hops, distances)

    def publish(self) -> None:
        """Send the current distance table to every neighbor."""
        for index, neighbor in enumerate(self.interface.outgoing_links()):
            self.interface.send_on_link(
                index,
                distance_table_advertisement(self.node_id, neighbor, self.distances),
            )

    def handle_advertisement(self, originator: int, packet: Packet) -> None:
        if self.interface.link_index(packet.source) is None:
            self.logger.warning(
                "Node %s: distance table from non-neighbor %s ignored",
                self.node_id,
                packet.source,
            )
            return
        self.advertisements[packet.source] = dict(packet.costs)


class LinkStateEngine(RoutingEngine):
    """Floods neighbor cost tables and runs Dijkstra over the learned topology."""

    kind = PacketKind.LINK_STATE

    def __init__(
        self,
        node_id: int,
        interface: NetworkInterface,
        probe: LinkProbe,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(node_id, interface, probe, logger)
        self.name = "LS"
        self.link_state: Dict[int, Dict[int, float]] = {}
        self.sequence = 0
        # highest flood instance processed per origin
        self.latest_sequence: Dict[int, int] = {}
        # flood instances processed per origin
        self.flood_deliveries: Counter = Counter()
        self.duplicates_discarded = 0

    def _cycle(self) -> bool:
        own = self.probe.snapshot()
        self.link_state[self.node_id] = own
        self.sequence += 1
        self.flood(link_state_advertisement(self.node_id, own, self.sequence))
        return self.compute()

    def flood(self, packet: Packet) -> None:
        """Send the advertisement to every neighbor that has not seen it yet."""
        for index, neighbor in enumerate(self.interface.outgoing_links()):
            if neighbor not in packet.visited:
                self.interface.send_on_link(index, packet)

    def handle_advertisement(self, originator: int, packet: Packet) -> None:
        origin = packet.source
        if origin == self.node_id:
            # own entry is only ever written from the local probe
            self.duplicates_discarded += 1
            return
        if packet.sequence <= self.latest_sequence.get(origin, 0):
            self.duplicates_discarded += 1
            self.logger.debug(
                "Node %s: stale advertisement %s#%s discarded",
                self.node_id,
                origin,
                packet.sequence,
            )
            return

        self.latest_sequence[origin] = packet.sequence
        self.flood_deliveries[origin] += 1
        self.link_state[origin] = dict(packet.costs)
        self.flood(packet.visit(self.node_id))

    def shortest_paths(
        self, topology: Mapping[int, Mapping[int, float]]
    ) -> Tuple[RoutingTable, Dict[int, float]]:
        """
        Run Dijkstra rooted at this router.

        Args:
            topology: Neighbor cost table of every known router.

        Returns:
            The destination to next hop table and the destination to distance table.

        Raises:
            IncompleteTopologyError: If a reached router has no entry in topology.
        """
        source = self.node_id
        # (accumulated_cost, node, first_hop); first_hop is None for the source
        queue = [(0.0, source, None)]
        best: Dict[int, float] = {source: 0.0}
        distances: Dict[int, float] = {}
        next_hops: RoutingTable = {}

        while queue:
            cost, current, first_hop = heapq.heappop(queue)
            if current in distances:
                continue
            distances[current] = cost
            next_hops[current] = first_hop

            if current not in topology:
                raise IncompleteTopologyError(current)
            for neighbour, link_cost in topology[current].items():
                if neighbour in distances:
                    continue
                new_cost = cost + link_cost
                # the neighbour is the first hop when relaxing from the source
                nh = neighbour if current == source else first_hop
                if neighbour not in best or new_cost < best[neighbour]:
                    best[neighbour] = new_cost
                    heapq.heappush(queue, (new_cost, neighbour, nh))

        return next_hops, distances

    def compute(self) -> bool:
        """
        Recompute the routing table, keeping the previous one if the topology is incomplete.

        Returns:
            True if the routing table changed.
        """
        topology = {node: dict(costs) for node, costs in self.link_state.items()}
        topology[self.node_id] = self.probe.snapshot()
        try:
            next_hops, distances = self.shortest_paths(topology)
        except IncompleteTopologyError as exc:
            self.logger.info(
                "Node %s: topology incomplete (%s), keeping previous routes",
                self.node_id,
                exc,
            )
            return False
        return self._install(next_hops, distances)


def engine_factory(
    algorithm: Union[str, RoutingAlgorithm],
    node_id: int,
    interface: NetworkInterface,
    probe: LinkProbe,
    logger: Optional[logging.Logger] = None,
) -> RoutingEngine:
    """
    Factory function to create the appropriate routing engine.

    Args:
        algorithm: RoutingAlgorithm or its value ("DV" or "LS").
        node_id: ID of the owning router.
        interface: Network interface of the owning router.
        probe: Cost discovery of the owning router.
        logger: Diagnostics logger.

    Returns:
        An instance of the selected routing engine.
    """
    try:
        algorithm = RoutingAlgorithm(algorithm)
    except ValueError as exc:
        raise ValueError(f"Unknown routing algorithm: {algorithm!r}") from exc
    if algorithm is RoutingAlgorithm.LINK_STATE:
        return LinkStateEngine(node_id, interface, probe, logger)
    return DistanceVectorEngine(node_id, interface, probe, logger)
