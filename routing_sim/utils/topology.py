"""Topology builders for the routing simulation.

Each builder returns a list of undirected edges and one propagation delay per
edge; build_simulator turns them into a ready-to-run NetworkSimulator.
"""

import random
from typing import List, Optional, Sequence, Tuple, Union

import simpy

from routing_sim.core.config import RouterConfig
from routing_sim.core.enums import RoutingAlgorithm
from routing_sim.core.simulator import NetworkSimulator

Edge = Tuple[int, int]


def line_topology(num_nodes: int, delay: float = 1.0) -> Tuple[List[Edge], List[float]]:
    """Nodes 0..n-1 connected in a line, every link with the same delay."""
    edges = [(i, i + 1) for i in range(num_nodes - 1)]
    return edges, [delay] * len(edges)


def ring_topology(num_nodes: int, delay: float = 1.0) -> Tuple[List[Edge], List[float]]:
    """Nodes 0..n-1 connected in a ring, every link with the same delay."""
    if num_nodes < 3:
        raise ValueError("A ring needs at least 3 nodes")
    edges = [(i, (i + 1) % num_nodes) for i in range(num_nodes)]
    return edges, [delay] * len(edges)


def random_topology(
    num_nodes: int,
    excess_edges: int,
    min_delay: float = 0.1,
    max_delay: float = 2.0,
    seed: Optional[int] = None,
) -> Tuple[List[Edge], List[float]]:
    """Generate a random connected graph: a spanning path plus excess edges.

    Args:
        num_nodes: Number of nodes, labelled 0..n-1.
        excess_edges: Number of additional edges beyond the spanning path.
        min_delay: Lower bound of the uniformly drawn link delays.
        max_delay: Upper bound of the uniformly drawn link delays.
        seed: Seed of the private random generator.

    Returns:
        The edges and their delays.
    """
    rng = random.Random(seed)
    nodes: List[int] = list(range(num_nodes))
    rng.shuffle(nodes)

    # spanning path keeps the graph connected
    edges: List[Edge] = [(nodes[i], nodes[i + 1]) for i in range(num_nodes - 1)]

    existing = {frozenset(edge) for edge in edges}
    possible_edges: List[Edge] = [
        (i, j)
        for i in range(num_nodes)
        for j in range(i + 1, num_nodes)
        if frozenset((i, j)) not in existing
    ]
    rng.shuffle(possible_edges)
    edges.extend(possible_edges[:excess_edges])

    delays = [rng.uniform(min_delay, max_delay) for _ in edges]
    return edges, delays


def build_simulator(
    edges: Sequence[Edge],
    delays: Sequence[float],
    algorithm: Union[str, RoutingAlgorithm] = RoutingAlgorithm.DISTANCE_VECTOR,
    config: Optional[RouterConfig] = None,
    nodes: Optional[Sequence[int]] = None,
    seed: int = 42,
    env: Optional[simpy.Environment] = None,
) -> NetworkSimulator:
    """Create a simulator with the given topology.

    Args:
        edges: Undirected links.
        delays: Propagation delay of each link.
        algorithm: Routing algorithm run by every node.
        config: Router configuration.
        nodes: Node IDs to create (defaults to the endpoints of the edges).
        seed: Random seed for reproducibility.
        env: SimPy environment (a new one by default).

    Returns:
        The simulator, not started yet.
    """
    if len(edges) != len(delays):
        raise ValueError("Every edge needs exactly one delay")
    simulator = NetworkSimulator(env or simpy.Environment(), algorithm, config, seed)
    node_ids = nodes if nodes is not None else sorted({n for edge in edges for n in edge})
    for node_id in node_ids:
        simulator.add_node(node_id)
    for (source, target), delay in zip(edges, delays):
        simulator.add_link(source, target, delay)
    return simulator
