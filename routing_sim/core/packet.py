"""Packet type for the routing simulation.

This module defines the Packet class, a single tagged variant covering data
traffic, link probes and the two kinds of routing advertisements. Packets are
immutable; routing metadata such as the hop budget or the visited set is
changed by producing an updated copy.
"""

from dataclasses import dataclass, field, replace
from numbers import Real
from typing import Any, Dict, FrozenSet, Mapping, Optional

from routing_sim.core.enums import PacketKind

BROADCAST = -1
DEFAULT_HOP_BUDGET = 5

_TIMESTAMPED = (PacketKind.PING, PacketKind.PONG)
_ADVERTISEMENTS = (PacketKind.LINK_STATE, PacketKind.DISTANCE_TABLE)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class Packet:
    """Represents a packet travelling between routers.

    Attributes:
        kind: Variant discriminant.
        source: Node ID of the originator.
        destination: Node ID of the receiver, or BROADCAST for flooded packets.
        hop_budget: Forwarding hops left before the packet is discarded.
        payload: Application data (DATA only).
        timestamp: Clock value when the probe was sent (PING and PONG).
        costs: Node ID to cost mapping (LINK_STATE and DISTANCE_TABLE).
        sequence: Flood instance number of the originator (LINK_STATE).
        visited: Routers that have already seen this flood instance (LINK_STATE).
    """

    kind: PacketKind
    source: int
    destination: int
    hop_budget: int = DEFAULT_HOP_BUDGET
    payload: Any = None
    timestamp: Optional[float] = None
    costs: Optional[Dict[int, float]] = None
    sequence: int = 0
    visited: FrozenSet[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Validate the variant fields and detach mutable inputs."""
        if not isinstance(self.kind, PacketKind):
            raise ValueError(f"Unknown packet kind: {self.kind!r}")
        if not _is_int(self.hop_budget):
            raise ValueError(f"Hop budget must be an int, got {self.hop_budget!r}")
        if not _is_int(self.sequence):
            raise ValueError(f"Sequence must be an int, got {self.sequence!r}")
        if self.kind in _TIMESTAMPED and not _is_number(self.timestamp):
            raise ValueError(f"{self.kind.name} packets need a numeric timestamp")
        if self.kind in _ADVERTISEMENTS:
            if not isinstance(self.costs, Mapping):
                raise ValueError(f"{self.kind.name} packets need a cost table")
            for node, cost in self.costs.items():
                if not _is_int(node) or not _is_number(cost) or cost < 0:
                    raise ValueError(f"Invalid cost entry {node!r}: {cost!r}")
            object.__setattr__(self, "costs", dict(self.costs))
        object.__setattr__(self, "visited", frozenset(self.visited))

    def decrement_hop_budget(self) -> "Packet":
        """Return a copy with one hop fewer left."""
        return replace(self, hop_budget=self.hop_budget - 1)

    def visit(self, node_id: int) -> "Packet":
        """Return a copy whose visited set includes node_id."""
        return replace(self, visited=self.visited | {node_id})

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the packet to a JSON compatible dictionary.

        Returns:
            Dictionary holding every field of the packet.
        """
        return {
            "kind": self.kind.name,
            "source": self.source,
            "destination": self.destination,
            "hop_budget": self.hop_budget,
            "payload": self.payload,
            "timestamp": self.timestamp,
            # JSON object keys are strings, so keep the pairs instead
            "costs": None if self.costs is None else [[k, v] for k, v in self.costs.items()],
            "sequence": self.sequence,
            "visited": sorted(self.visited),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Packet":
        """Rebuild a packet produced by to_dict.

        Args:
            data: Dictionary produced by to_dict (possibly through JSON).

        Returns:
            The equivalent Packet.

        Raises:
            ValueError: If the kind is unknown or a field is missing or malformed.
        """
        try:
            kind = PacketKind[data["kind"]]
        except KeyError as exc:
            raise ValueError(f"Unknown packet kind: {data.get('kind')!r}") from exc
        costs = data.get("costs")
        return cls(
            kind=kind,
            source=data["source"],
            destination=data["destination"],
            hop_budget=data.get("hop_budget", DEFAULT_HOP_BUDGET),
            payload=data.get("payload"),
            timestamp=data.get("timestamp"),
            costs=None if costs is None else {int(k): v for k, v in costs},
            sequence=data.get("sequence", 0),
            visited=frozenset(data.get("visited", ())),
        )


def data_packet(
    source: int, destination: int, payload: Any, hop_budget: int = DEFAULT_HOP_BUDGET
) -> Packet:
    """Create an application data packet."""
    return Packet(PacketKind.DATA, source, destination, hop_budget, payload=payload)


def ping_probe(source: int, destination: int, timestamp: float) -> Packet:
    """Create a probe stamped with the sender's clock."""
    return Packet(PacketKind.PING, source, destination, 1, timestamp=timestamp)


def pong_reply(source: int, destination: int, timestamp: float) -> Packet:
    """Create the reply to a probe, echoing its timestamp."""
    return Packet(PacketKind.PONG, source, destination, 1, timestamp=timestamp)


def link_state_advertisement(
    source: int,
    costs: Mapping[int, float],
    sequence: int,
    visited: FrozenSet[int] = frozenset(),
) -> Packet:
    """Create a flooded advertisement of source's neighbor costs.

    The originator is always part of the visited set.
    """
    return Packet(
        PacketKind.LINK_STATE,
        source,
        BROADCAST,
        costs=dict(costs),
        sequence=sequence,
        visited=frozenset(visited) | {source},
    )


def distance_table_advertisement(
    source: int, destination: int, distances: Mapping[int, float]
) -> Packet:
    """Create a distance vector for a single neighbor."""
    return Packet(
        PacketKind.DISTANCE_TABLE, source, destination, 1, costs=dict(distances)
    )
