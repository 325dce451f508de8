#!/usr/bin/env python3
"""Run a dynamic routing simulation from the command line.

Builds a topology, lets the routers converge with the chosen algorithm(s),
sends some traffic between random node pairs and saves the metrics.
"""

import argparse
import logging
import os
import random
import sys
from typing import List

from routing_sim.core.config import RouterConfig
from routing_sim.core.simulator import NetworkSimulator
from routing_sim.traffic.generators import poisson_traffic
from routing_sim.utils.metrics import compare_algorithms
from routing_sim.utils.topology import (
    build_simulator,
    line_topology,
    random_topology,
    ring_topology,
)
from routing_sim.utils.visualization import plot_route_changes, save_network_visualization


def parse_args(argv: List[str]) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Dynamic Routing Simulation")
    parser.add_argument(
        "--algorithm", choices=["DV", "LS", "both"], default="both", help="Routing algorithm"
    )
    parser.add_argument(
        "--topology", choices=["line", "ring", "random"], default="random", help="Topology type"
    )
    parser.add_argument("--nodes", type=int, default=8, help="Number of routers")
    parser.add_argument(
        "--excess-edges", type=int, default=4, help="Extra edges of the random topology"
    )
    parser.add_argument("--duration", type=float, default=200.0, help="Simulated seconds")
    parser.add_argument("--flows", type=int, default=3, help="Number of traffic flows")
    parser.add_argument("--rate", type=float, default=0.5, help="Payloads per second per flow")
    parser.add_argument(
        "--interval", type=float, default=10.0, help="Seconds between discovery cycles"
    )
    parser.add_argument("--hop-budget", type=int, default=5, help="Hop budget of data packets")
    parser.add_argument(
        "--full-rtt", action="store_true", help="Use the full round-trip time as link cost"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output-dir", default="results", help="Directory for results")
    parser.add_argument("--visualize", action="store_true", help="Save plots")
    parser.add_argument(
        "--log-level", default="warning", choices=["debug", "info", "warning", "error"]
    )
    return parser.parse_args(argv)


def setup_logging(level_name: str) -> None:
    """Configure root logging for the given level name (e.g. "info")."""
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.WARNING),
        format="%(levelname)-7s %(name)s: %(message)s",
    )


def create_simulator(args: argparse.Namespace, algorithm: str) -> NetworkSimulator:
    """Build the requested topology and traffic for one algorithm."""
    if args.topology == "line":
        edges, delays = line_topology(args.nodes)
    elif args.topology == "ring":
        edges, delays = ring_topology(args.nodes)
    else:
        edges, delays = random_topology(args.nodes, args.excess_edges, seed=args.seed)

    config = RouterConfig(
        discovery_interval=args.interval,
        default_hop_budget=args.hop_budget,
        halve_rtt=not args.full_rtt,
    )
    simulator = build_simulator(
        edges, delays, algorithm, config, nodes=range(args.nodes), seed=args.seed
    )

    pairs = [(s, d) for s in range(args.nodes) for d in range(args.nodes) if s != d]
    rng = random.Random(args.seed)
    # traffic starts once the first cycles had a chance to run
    warmup = args.interval * 3
    for source, destination in rng.sample(pairs, min(args.flows, len(pairs))):
        simulator.packet_generator(
            source, destination, poisson_traffic(args.rate), start_time=warmup
        )
    return simulator


def main(argv: List[str]) -> int:
    """Run the simulation(s) described by argv and save the results."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    algorithms = ["DV", "LS"] if args.algorithm == "both" else [args.algorithm]
    simulators = []
    for algorithm in algorithms:
        print(f"\n=== Running {algorithm} on a {args.topology} topology ===")
        simulator = create_simulator(args, algorithm)
        metrics = simulator.run(args.duration, updates=True)
        print(f"\nDelivered: {metrics['packets_delivered']}/{metrics['packets_sent']}")
        print(f"Drops: {metrics['packet_drops']}")
        print(f"Control packets: {sum(metrics['control_packets'].values())}")
        print(f"Last route change: {metrics['last_route_change']}")
        print(f"Converged: {metrics['converged']}")
        simulators.append(simulator)

    os.makedirs(args.output_dir, exist_ok=True)
    compare_algorithms(simulators, args.output_dir)

    if args.visualize:
        for simulator in simulators:
            save_network_visualization(
                simulator,
                focus=0,
                filename=os.path.join(
                    args.output_dir, f"{simulator.algorithm.value.lower()}_routes.png"
                ),
            )
        plot_route_changes(
            simulators, filename=os.path.join(args.output_dir, "route_changes.png")
        )

    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
