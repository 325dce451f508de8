"""Visualization utilities for the routing simulation.

This module provides functions for drawing the network topology with the
routes a router has converged on, and the timeline of routing table changes.
"""

import os
from typing import List, Optional, Tuple

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

from routing_sim.core.simulator import NetworkSimulator


def _save_or_show(fig, filename: Optional[str], block: bool) -> None:
    if filename:
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(filename)
        plt.close(fig)
    else:
        plt.show(block=block)
        if not block:
            plt.pause(0.001)


def save_network_visualization(
    simulator: NetworkSimulator,
    focus: Optional[int] = None,
    filename: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 8),
    block: bool = True,
) -> None:
    """Save network topology visualization to a file.

    Args:
        simulator: NetworkSimulator instance.
        focus: Node whose forwarding tree is highlighted.
        filename: Output filename, or None to show it immediately.
        figsize: Figure size as (width, height) in inches.
        block: Whether showing the figure blocks.
    """
    fig = plt.figure(figsize=figsize)

    graph = simulator.graph
    pos = nx.spring_layout(graph, seed=7)

    nx.draw_networkx_nodes(graph, pos, node_size=500, node_color="lightblue")
    nx.draw_networkx_edges(graph, pos, edge_color="gray")

    if focus is not None:
        # every path from focus, as the routing tables forward it
        tree = set()
        for destination in graph.nodes:
            path = simulator.route(focus, destination)
            if path:
                tree.update(zip(path, path[1:]))
        nx.draw_networkx_edges(
            graph.to_directed(),
            pos,
            edgelist=sorted(tree),
            width=2,
            alpha=0.6,
            edge_color="blue",
            arrows=True,
            arrowsize=20,
        )
        nx.draw_networkx_nodes(
            graph, pos, nodelist=[focus], node_size=600, node_color="orange"
        )

    nx.draw_networkx_labels(graph, pos, font_size=16)

    edge_labels = {(u, v): f"{graph[u][v]['delay']*1000:.1f}ms" for u, v in graph.edges()}
    nx.draw_networkx_edge_labels(
        graph,
        pos,
        edge_labels=edge_labels,
        font_size=10,
        rotate=False,
        bbox=dict(facecolor="white", edgecolor="none", alpha=0.7),
    )

    plt.title(f"{simulator.algorithm.value} routes at t={simulator.env.now:.1f}s")
    plt.axis("off")
    plt.tight_layout()

    _save_or_show(fig, filename, block)


def plot_route_changes(
    simulator_list: List[NetworkSimulator],
    filename: Optional[str] = None,
    bin_width: float = 1.0,
    block: bool = True,
) -> None:
    """Plot how many routing table changes happened over time.

    Args:
        simulator_list: Simulators that have been run.
        filename: Output filename, or None to show it immediately.
        bin_width: Width of the histogram bins in seconds.
        block: Whether showing the figure blocks.
    """
    num_simulators = len(simulator_list)
    fig, axes = plt.subplots(
        num_simulators, 1, figsize=(12, 4 * num_simulators), sharex=True, squeeze=False
    )

    for i, simulator in enumerate(simulator_list):
        ax = axes[i][0]
        times = [time for time, _ in simulator.route_changes]
        end = max(simulator.env.now, bin_width)
        bins = np.arange(0, end + bin_width, bin_width)
        ax.hist(times, bins=bins, color="steelblue")
        ax.set_title(f"Routing Table Changes (Algorithm: {simulator.algorithm.value})")
        ax.set_ylabel("Changes")
        ax.grid(True, linestyle="--", alpha=0.7)
        if i == num_simulators - 1:
            ax.set_xlabel("Simulation Time (seconds)")

    plt.tight_layout()

    _save_or_show(fig, filename, block)
