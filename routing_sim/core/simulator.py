"""Network simulator class for the routing simulation.

This module defines the NetworkSimulator class, which builds the topology,
wires every router to its links, drives the SimPy clock and checks the routes
the routers converge on against an offline shortest-path computation.
"""

from collections import Counter
import logging
import math
import random
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import networkx as nx
import numpy as np
import simpy

from routing_sim.core.config import RouterConfig
from routing_sim.core.enums import RoutingAlgorithm
from routing_sim.core.interface import NetworkInterface
from routing_sim.core.link import Link
from routing_sim.core.node import Node
from routing_sim.core.packet import BROADCAST
from routing_sim.traffic.generators import sequential_payload

LOGGER = logging.getLogger(__name__)


class NetworkSimulator:
    """Network simulation environment.

    Attributes:
        env: SimPy environment.
        algorithm: Routing algorithm run by every node.
        config: Router configuration shared by every node.
        graph: NetworkX graph of the topology, with a "delay" attribute per edge.
        nodes: Node objects keyed by node ID.
        interfaces: NetworkInterface objects keyed by node ID.
        links: Link objects keyed by (source, target) tuple.
        packets_sent: Number of data payloads handed to the routers.
        arrivals: (time, node_id, payload) for every delivered payload.
        route_changes: (time, node_id) for every routing table change.
        metrics: Performance metrics for the simulation.
    """

    def __init__(
        self,
        env: simpy.Environment,
        algorithm: Union[str, RoutingAlgorithm] = RoutingAlgorithm.DISTANCE_VECTOR,
        config: Optional[RouterConfig] = None,
        seed: int = 42,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the network simulator.

        Args:
            env: SimPy environment.
            algorithm: Routing algorithm, "DV" or "LS".
            config: Router configuration (defaults to RouterConfig()).
            seed: Random seed for reproducibility.
            logger: Parent logger of the per-node loggers.
        """
        self.env = env
        self.algorithm = RoutingAlgorithm(algorithm)
        self.config = (config or RouterConfig()).validate()
        self.logger = logger or LOGGER
        self.graph = nx.Graph()
        self.nodes: Dict[int, Node] = {}
        self.interfaces: Dict[int, NetworkInterface] = {}
        self.links: Dict[Tuple[int, int], Link] = {}
        self.packets_sent = 0
        self.arrivals: List[Tuple[float, int, Any]] = []
        self.route_changes: List[Tuple[float, int]] = []
        self.started = False

        random.seed(seed)
        np.random.seed(seed)

        self.metrics: Dict[str, Any] = {}

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            "packet_arrived": [],  # data payload reaches its destination
            "routes_changed": [],  # a node installs a different routing table
            "sim_end": [],  # the simulation ends
        }

    def add_node(self, node_id: int) -> Node:
        """Add a router to the network.

        Args:
            node_id: Unique, non-negative identifier for the node.

        Returns:
            The created Node object.
        """
        if not isinstance(node_id, int) or node_id < 0 or node_id == BROADCAST:
            raise ValueError(f"Node IDs must be non-negative integers, got {node_id!r}")
        if node_id in self.nodes:
            raise ValueError(f"Node {node_id} already exists")

        interface = NetworkInterface(self.env, node_id, self.packet_arrived)
        node = Node(
            self.env,
            node_id,
            interface,
            self.algorithm,
            self.config,
            self.logger.getChild(f"node{node_id}"),
        )
        node.on_routes_changed = self.routes_changed
        self.interfaces[node_id] = interface
        self.nodes[node_id] = node
        self.graph.add_node(node_id)
        if self.started:
            node.start()
        return node

    def add_link(
        self, source: int, target: int, propagation_delay: float
    ) -> Tuple[Link, Link]:
        """Add a BIDIRECTIONAL link between nodes.

        Args:
            source: Source node ID.
            target: Target node ID.
            propagation_delay: Propagation delay in seconds, in both directions.

        Returns:
            Tuple of created Link objects (source->target, target->source).
        """
        if source not in self.nodes or target not in self.nodes:
            raise ValueError(f"Nodes {source} and/or {target} do not exist")
        if source == target:
            raise ValueError("Cannot link a node to itself")
        if (source, target) in self.links:
            raise ValueError(f"Nodes {source} and {target} are already linked")
        if self.started:
            raise ValueError("Links cannot be added once the simulation started")

        link_to = Link(self.env, source, target, propagation_delay)
        link_from = Link(self.env, target, source, propagation_delay)
        link_to.connect(self.interfaces[target])
        link_from.connect(self.interfaces[source])
        self.interfaces[source].attach(link_to)
        self.interfaces[target].attach(link_from)
        self.links[(source, target)] = link_to
        self.links[(target, source)] = link_from
        self.graph.add_edge(source, target, delay=propagation_delay)
        return link_to, link_from

    def set_link_delay(self, source: int, target: int, propagation_delay: float) -> None:
        """Change the delay of an existing link in both directions.

        Args:
            source: One end of the link.
            target: The other end of the link.
            propagation_delay: New propagation delay in seconds.
        """
        if (source, target) not in self.links:
            raise ValueError(f"No link between {source} and {target}")
        self.links[(source, target)].set_propagation_delay(propagation_delay)
        self.links[(target, source)].set_propagation_delay(propagation_delay)
        self.graph[source][target]["delay"] = propagation_delay
        self.logger.info(
            "Link %s-%s delay set to %.6f at %.3f",
            source,
            target,
            propagation_delay,
            self.env.now,
        )

    def start(self) -> None:
        """Launch the runtime loop of every router."""
        self.started = True
        for node in self.nodes.values():
            node.start()

    def send(self, source: int, destination: int, payload: Any) -> None:
        """Queue a payload for transmission by the source router.

        Args:
            source: Source node ID.
            destination: Destination node ID.
            payload: Application data.
        """
        if source not in self.nodes:
            raise ValueError(f"Node {source} does not exist")
        self.packets_sent += 1
        self.interfaces[source].transmit(destination, payload)

    def packet_generator(
        self,
        source: int,
        destination: int,
        interval: Callable[[], float],
        payload_factory: Optional[Callable[[], Any]] = None,
        jitter: float = 0,
        start_time: float = 0,
    ) -> simpy.events.Process:
        """Generate traffic according to the specified pattern.

        Args:
            source: Source node ID.
            destination: Destination node ID.
            interval: Time between payloads in seconds.
            payload_factory: Creates each payload (defaults to a running counter).
            jitter: Random variation in interval (fraction of interval).
            start_time: Delay before the first payload.

        Returns:
            SimPy process for the packet generator.
        """
        make_payload = payload_factory or sequential_payload(f"{source}->{destination}")

        def generator_process():
            yield self.env.timeout(start_time)
            while True:
                current_interval = interval()

                if jitter > 0:
                    current_interval *= 1 + random.uniform(-jitter, jitter)

                self.send(source, destination, make_payload())

                yield self.env.timeout(current_interval)

        return self.env.process(generator_process())

    def packet_arrived(self, node_id: int, payload: Any) -> None:
        """Handle payload arrival at its destination.

        Args:
            node_id: Node where the payload arrived.
            payload: The delivered payload.
        """
        self.arrivals.append((self.env.now, node_id, payload))
        self.call_hooks("packet_arrived", node_id, payload, self.env.now)

    def routes_changed(self, node_id: int, sim_time: float) -> None:
        """Handle a routing table change at a node.

        Args:
            node_id: Node whose routing table changed.
            sim_time: Time of the change.
        """
        self.route_changes.append((sim_time, node_id))
        self.call_hooks("routes_changed", node_id, sim_time)

    def shortest_path_lengths(self) -> Dict[int, Dict[int, float]]:
        """Offline shortest-path costs over the current link delays."""
        return {
            source: dict(lengths)
            for source, lengths in nx.all_pairs_dijkstra_path_length(
                self.graph, weight="delay"
            )
        }

    def route(self, source: int, destination: int) -> Optional[List[int]]:
        """Follow the routing tables from source to destination.

        Args:
            source: Source node ID.
            destination: Destination node ID.

        Returns:
            The list of nodes visited, or None if a table lacks the destination,
            points to a non-neighbor or the tables loop.
        """
        path = [source]
        current = source
        while current != destination:
            next_hop = self.nodes[current].routing_table.get(destination)
            if next_hop is None or (current, next_hop) not in self.links:
                return None
            if next_hop in path:
                return None
            path.append(next_hop)
            current = next_hop
        return path

    def route_cost(self, source: int, destination: int) -> Optional[float]:
        """Cost of the path the routing tables select, using the real link delays."""
        path = self.route(source, destination)
        if path is None:
            return None
        return sum(self.graph[u][v]["delay"] for u, v in zip(path, path[1:]))

    def converged(self, rel_tol: float = 1e-6) -> bool:
        """Check every pair of nodes against the offline shortest paths.

        Reachable pairs must be routed at their shortest-path cost and
        unreachable pairs must have no route at all.

        Args:
            rel_tol: Relative tolerance on path costs.

        Returns:
            True if every routing table is correct.
        """
        lengths = self.shortest_path_lengths()
        for source in self.nodes:
            for destination in self.nodes:
                expected = lengths[source].get(destination)
                actual = self.route_cost(source, destination)
                if expected is None or actual is None:
                    if expected is not actual:
                        return False
                elif not math.isclose(actual, expected, rel_tol=rel_tol, abs_tol=1e-9):
                    return False
        return True

    def calculate_metrics(self) -> Dict[str, Any]:
        """Calculate simulation metrics.

        Returns:
            Dictionary of calculated metrics.
        """
        packets_delivered = len(self.arrivals)
        drops: Counter = Counter()
        for node in self.nodes.values():
            for reason, count in node.packets_dropped.items():
                drops[reason.value] += count

        control_packets: Counter = Counter()
        for link in self.links.values():
            control_packets.update(link.packets_by_kind)
        control_packets.pop("DATA", None)

        self.metrics = {
            "algorithm": self.algorithm.value,
            "simulation_time": self.env.now,
            "packets_sent": self.packets_sent,
            "packets_delivered": packets_delivered,
            "delivery_ratio": (
                packets_delivered / self.packets_sent if self.packets_sent else 0
            ),
            "packet_drops": dict(drops),
            "control_packets": dict(control_packets),
            "routing_updates": {
                node_id: node.routing_updates for node_id, node in self.nodes.items()
            },
            "last_route_change": (
                self.route_changes[-1][0] if self.route_changes else None
            ),
            "converged": self.converged(),
        }
        return self.metrics

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback function for a specific event type.

        Args:
            event_type: The type of event to register for.
            callback: The function to call when the event occurs.
        """
        if event_type not in self.hooks:
            raise ValueError(f"Unknown hook type: {event_type}")
        self.hooks[event_type].append(callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        """Call all registered callbacks for the given event type.

        Args:
            event_type: The type of event that occurred.
            *args, **kwargs: Arguments to pass to the callback functions.
        """
        for callback in self.hooks.get(event_type, []):
            callback(*args, **kwargs)

    def run(self, duration: float, updates: bool = False) -> Dict[str, Any]:
        """Run the simulation for a specified duration.

        Args:
            duration: Additional simulated time in seconds.
            updates: Print progress while running.

        Returns:
            Dictionary of calculated metrics.
        """
        if not self.started:
            self.start()

        end = self.env.now + duration
        if updates:
            count = 10
            interval = duration / count

            def update():
                counter = 0
                while counter < count:
                    yield self.env.timeout(interval)
                    counter += 1
                    progress = counter / count * 100
                    print(f"Progress: {progress:.2f}%", end="\r")

            self.env.process(update())

        self.env.run(until=end)

        self.calculate_metrics()

        self.call_hooks("sim_end", self.metrics)

        return self.metrics
