"""Traffic generators for the routing simulation.

This module provides functions for generating data traffic: the interval
between two payloads of a flow and the payloads themselves.
"""

import itertools
import random
from typing import Any, Callable

import numpy as np


def constant_traffic(rate: float) -> Callable[[], float]:
    """Generate constant rate traffic.

    Args:
        rate: Rate of payload generation in payloads per second.

    Returns:
        Function that returns constant interval between payloads.
    """
    if rate <= 0:
        raise ValueError("rate must be positive")
    return lambda: 1 / rate


def variable_traffic(min_rate: float, max_rate: float) -> Callable[[], float]:
    """Generate variable rate traffic.

    Args:
        min_rate: Minimum rate of payload generation in payloads per second.
        max_rate: Maximum rate of payload generation in payloads per second.

    Returns:
        Function that returns variable interval between payloads.
    """
    if not 0 < min_rate <= max_rate:
        raise ValueError("rates must satisfy 0 < min_rate <= max_rate")
    return lambda: 1 / random.uniform(min_rate, max_rate)


def poisson_traffic(rate: float) -> Callable[[], float]:
    """Generate Poisson traffic.

    Args:
        rate: Average rate of payload generation in payloads per second.

    Returns:
        Function that returns exponentially distributed interval between payloads.
    """
    if rate <= 0:
        raise ValueError("rate must be positive")
    return lambda: float(np.random.exponential(1 / rate))


def sequential_payload(prefix: str) -> Callable[[], Any]:
    """Generate numbered payloads.

    Args:
        prefix: Text put in front of every payload number.

    Returns:
        Function that returns "<prefix>#1", "<prefix>#2", ...
    """
    counter = itertools.count(1)
    return lambda: f"{prefix}#{next(counter)}"
