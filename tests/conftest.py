from typing import Any, Dict, List, Optional, Tuple

import matplotlib
import pytest

matplotlib.use("Agg")

from routing_sim.core.packet import Packet, pong_reply
from routing_sim.core.probe import LinkProbe


class RecordingInterface:
    """Stand-in for NetworkInterface that records what the router sends."""

    def __init__(self, node_id: int, neighbors: List[int]):
        self.node_id = node_id
        self.neighbors = list(neighbors)
        self.sent: List[Tuple[int, Packet]] = []
        self.arrivals: List[Any] = []

    def outgoing_links(self) -> List[int]:
        return list(self.neighbors)

    def link_index(self, neighbor: int) -> Optional[int]:
        if neighbor in self.neighbors:
            return self.neighbors.index(neighbor)
        return None

    def send_on_link(self, index: int, packet: Any) -> None:
        self.sent.append((self.neighbors[index], packet))

    def report_arrival(self, payload: Any) -> None:
        self.arrivals.append(payload)

    def sent_to(self, neighbor: int) -> List[Packet]:
        return [packet for target, packet in self.sent if target == neighbor]


class ManualClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def measure(probe: LinkProbe, costs: Dict[int, float]) -> None:
    """Feed the probe pongs that produce the given one-way costs."""
    for neighbor, cost in costs.items():
        probe.clock.now = 2 * cost
        probe.handle_pong(pong_reply(neighbor, probe.node_id, 0.0))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_interface():
    return RecordingInterface


@pytest.fixture
def make_probe():
    def factory(interface, costs=None):
        probe = LinkProbe(interface.node_id, interface, ManualClock())
        measure(probe, costs or {})
        return probe

    return factory
