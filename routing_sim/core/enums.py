"""Enumerations for the routing simulation.

This module defines the discriminants and outcome codes shared by the
router runtime, the routing engines and the packet forwarder.
"""

from enum import Enum


class PacketKind(Enum):
    """Enum for the packet variants exchanged between routers.

    Attributes:
        DATA: Application traffic carrying an opaque payload.
        PING: Link probe stamped with the sender's clock.
        PONG: Reply to a probe, echoing the original timestamp.
        LINK_STATE: Flooded neighbor cost table of one router.
        DISTANCE_TABLE: Distance vector sent to direct neighbors only.
    """

    DATA = 1
    PING = 2
    PONG = 3
    LINK_STATE = 4
    DISTANCE_TABLE = 5


class RoutingAlgorithm(Enum):
    """Enum for the route computation used by a router.

    Attributes:
        DISTANCE_VECTOR: Bellman-Ford relaxation over neighbor tables.
        LINK_STATE: Flooded topology plus Dijkstra.
    """

    DISTANCE_VECTOR = "DV"
    LINK_STATE = "LS"


class ForwardOutcome(Enum):
    """Terminal or transit state of a data packet after one forwarding step."""

    DELIVERED = "delivered"
    FORWARDED = "forwarded"
    HOP_LIMIT = "hop limit exceeded"
    NO_ROUTE = "no route to destination"


class DropReason(Enum):
    """Reason a router discarded a packet."""

    NO_ROUTE = "no route to destination"
    HOP_LIMIT = "hop limit exceeded"
    UNRECOGNIZED = "unrecognized packet"
    MALFORMED = "malformed packet"
