"""Metrics utilities for the routing simulation.

This module provides functions for saving and comparing the metrics of
simulations run with different routing algorithms.
"""

import csv
import json
import os
from typing import Any, Dict, List

from routing_sim.core.simulator import NetworkSimulator


def save_metrics_to_json(
    metrics: Dict[str, Any], filename: str = "results/metrics.json"
) -> None:
    """Save metrics to a JSON file.

    Args:
        metrics: Dictionary of metrics to save.
        filename: Output filename.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    # JSON object keys must be strings
    serializable_metrics = {}
    for key, value in metrics.items():
        if isinstance(value, dict):
            serializable_metrics[key] = {str(k): v for k, v in value.items()}
        else:
            serializable_metrics[key] = value

    with open(filename, "w") as f:
        json.dump(serializable_metrics, f, indent=2)


def save_comparison_to_csv(
    metrics_list: List[Dict[str, Any]],
    filename: str = "results/metrics_comparison.csv",
) -> None:
    """Save a comparison of metrics from different algorithms to a CSV file.

    Args:
        metrics_list: List of metrics dictionaries from different simulations.
        filename: Output filename.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    with open(filename, "w", newline="") as f:
        writer = csv.writer(f)

        writer.writerow(
            [
                "Algorithm",
                "Delivered",
                "Delivery Ratio",
                "Control Packets",
                "Last Route Change",
                "Converged",
            ]
        )

        for metrics in metrics_list:
            writer.writerow(
                [
                    metrics["algorithm"],
                    metrics["packets_delivered"],
                    metrics["delivery_ratio"],
                    sum(metrics["control_packets"].values()),
                    metrics["last_route_change"],
                    metrics["converged"],
                ]
            )


def compare_algorithms(
    simulators: List[NetworkSimulator], output_dir: str = "results"
) -> Dict[str, List[Any]]:
    """Compare metrics from simulations run with different algorithms.

    Args:
        simulators: List of NetworkSimulator instances that have been run.
        output_dir: Directory to save output files.

    Returns:
        Dictionary of metric comparisons.
    """
    metrics_list = [sim.metrics or sim.calculate_metrics() for sim in simulators]

    save_comparison_to_csv(metrics_list, f"{output_dir}/metrics_comparison.csv")
    for metrics in metrics_list:
        save_metrics_to_json(
            metrics, f"{output_dir}/{metrics['algorithm'].lower()}_metrics.json"
        )

    return {
        "algorithms": [m["algorithm"] for m in metrics_list],
        "delivery_ratio": [m["delivery_ratio"] for m in metrics_list],
        "control_packets": [sum(m["control_packets"].values()) for m in metrics_list],
        "last_route_change": [m["last_route_change"] for m in metrics_list],
        "converged": [m["converged"] for m in metrics_list],
    }
