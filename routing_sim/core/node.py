"""Node class for the routing simulation.

This module defines the Node class, the per-router runtime. Each node runs as
its own SimPy process that periodically triggers cost discovery and route
computation and services one outbound and one inbound packet per iteration.
"""

from collections import Counter
import logging
from typing import Any, Callable, Dict, Generator, Optional, Union

import simpy

from routing_sim.core.config import RouterConfig
from routing_sim.core.enums import DropReason, ForwardOutcome, PacketKind, RoutingAlgorithm
from routing_sim.core.forwarding import PacketForwarder
from routing_sim.core.interface import NetworkInterface
from routing_sim.core.packet import Packet, data_packet
from routing_sim.core.probe import LinkProbe
from routing_sim.core.routing_algorithms import RoutingEngine, RoutingTable, engine_factory

_DROPS = {
    ForwardOutcome.HOP_LIMIT: DropReason.HOP_LIMIT,
    ForwardOutcome.NO_ROUTE: DropReason.NO_ROUTE,
}


class Node:
    """Represents a router running a dynamic routing protocol.

    Attributes:
        env: SimPy environment.
        id: Unique identifier for the node.
        interface: Link substrate and traffic source of the node.
        config: Timing and protocol parameters.
        probe: Neighbor cost discovery.
        engine: Distance-vector or link-state route computation.
        forwarder: Data packet forwarding.
        packets_forwarded: Number of data packets sent toward a next hop.
        packets_delivered: Number of data packets delivered to this node.
        packets_dropped: Dropped packets per DropReason.
        routing_updates: Number of cycles that changed the routing table.
        on_routes_changed: Called with (node_id, time) when the routing table changes.
    """

    def __init__(
        self,
        env: simpy.Environment,
        node_id: int,
        interface: NetworkInterface,
        algorithm: Union[str, RoutingAlgorithm] = RoutingAlgorithm.DISTANCE_VECTOR,
        config: Optional[RouterConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize a router.

        Args:
            env: SimPy environment.
            node_id: Unique identifier for the node.
            interface: Network interface of the node.
            algorithm: Routing algorithm, "DV" or "LS".
            config: Timing and protocol parameters (defaults to RouterConfig()).
            logger: Diagnostics logger shared by every component of the node.
        """
        if interface.node_id != node_id:
            raise ValueError("Interface does not belong to this node.")
        self.env = env
        self.id = node_id
        self.interface = interface
        self.config = (config or RouterConfig()).validate()
        self.logger = logger or logging.getLogger(f"{__name__}.{node_id}")

        self.probe = LinkProbe(
            node_id, interface, lambda: self.env.now, self.config.halve_rtt, self.logger
        )
        self.engine: RoutingEngine = engine_factory(
            algorithm, node_id, interface, self.probe, self.logger
        )
        self.forwarder = PacketForwarder(
            node_id, interface, lambda: self.engine.routing_table, self.logger
        )

        self.packets_forwarded = 0
        self.packets_delivered = 0
        self.packets_dropped: Counter = Counter()
        self.routing_updates = 0
        self.on_routes_changed: Optional[Callable[[int, float], None]] = None
        self.process: Optional[simpy.events.Process] = None

        self._handlers: Dict[PacketKind, Callable[[int, Packet], None]] = {
            PacketKind.DATA: lambda originator, packet: self.forward(packet),
            PacketKind.PING: lambda originator, packet: self.probe.handle_ping(packet),
            PacketKind.PONG: lambda originator, packet: self.probe.handle_pong(packet),
            self.engine.kind: self.engine.handle_advertisement,
        }

    @property
    def routing_table(self) -> RoutingTable:
        """Routing table currently published by the engine."""
        return self.engine.routing_table

    @property
    def neighbor_costs(self) -> Dict[int, float]:
        """Snapshot of the measured neighbor costs."""
        return self.probe.snapshot()

    def start(self) -> simpy.events.Process:
        """Launch the runtime loop as a SimPy process."""
        if self.process is None:
            self.process = self.env.process(self.run())
        return self.process

    def run(self) -> Generator[Any, Any, None]:
        """Runtime loop: timer check, one outbound packet, one inbound packet."""
        next_discovery = self.env.now + self.config.initial_delay
        # one pending timeout per discovery deadline
        timer: Optional[simpy.events.Timeout] = None
        timer_deadline = next_discovery
        while True:
            if self.env.now >= next_discovery:
                next_discovery = self.env.now + self.config.discovery_interval
                self.discover()

            busy = False
            outbound = self.interface.poll_outbound_traffic()
            if outbound is not None:
                busy = True
                destination, payload = outbound
                self.originate(destination, payload)

            inbound = self.interface.poll_inbound_packet()
            if inbound is not None:
                busy = True
                originator, packet = inbound
                self.dispatch(originator, packet)

            if not busy:
                if timer is None or timer.processed or timer_deadline != next_discovery:
                    timer = self.env.timeout(next_discovery - self.env.now)
                    timer_deadline = next_discovery
                yield self.env.any_of([timer, self.interface.activity()])

    def discover(self) -> bool:
        """Run one cost discovery and route computation cycle.

        Returns:
            True if the routing table changed.
        """
        changed = self.engine.run_cycle()
        if changed:
            self.routing_updates += 1
            self.logger.info(
                "Node %s: routes updated at %.3f: %s",
                self.id,
                self.env.now,
                self.routing_table,
            )
            if self.on_routes_changed is not None:
                self.on_routes_changed(self.id, self.env.now)
        return changed

    def originate(self, destination: int, payload: Any) -> ForwardOutcome:
        """Send locally originated traffic with the default hop budget."""
        packet = data_packet(
            self.id, destination, payload, self.config.default_hop_budget
        )
        return self.forward(packet)

    def forward(self, packet: Packet) -> ForwardOutcome:
        """Hand a data packet to the forwarder and account for the outcome."""
        outcome = self.forwarder.forward(packet)
        if outcome is ForwardOutcome.FORWARDED:
            self.packets_forwarded += 1
        elif outcome is ForwardOutcome.DELIVERED:
            self.packets_delivered += 1
        else:
            self.packets_dropped[_DROPS[outcome]] += 1
        return outcome

    def dispatch(self, originator: int, packet: Any) -> None:
        """Route a received packet to the component handling its kind.

        Args:
            originator: Neighbor the packet came from.
            packet: The received packet.
        """
        handler = self._handlers.get(packet.kind) if isinstance(packet, Packet) else None
        if handler is None:
            self.packets_dropped[DropReason.UNRECOGNIZED] += 1
            self.logger.warning(
                "Node %s: unrecognized packet %r from %s dropped",
                self.id,
                packet,
                originator,
            )
            return
        try:
            handler(originator, packet)
        except (TypeError, ValueError, KeyError) as exc:
            self.packets_dropped[DropReason.MALFORMED] += 1
            self.logger.warning(
                "Node %s: malformed %s packet from %s dropped: %s",
                self.id,
                packet.kind.name,
                originator,
                exc,
            )

    def __repr__(self) -> str:
        """Return string representation of the node.

        Returns:
            String representation of the node.
        """
        return f"Node({self.id}, {self.engine!r})"
