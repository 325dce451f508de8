import networkx as nx
import pytest
import simpy

from routing_sim.core.config import RouterConfig
from routing_sim.core.enums import DropReason, RoutingAlgorithm
from routing_sim.core.interface import NetworkInterface
from routing_sim.core.link import Link
from routing_sim.core.simulator import NetworkSimulator
from routing_sim.utils.topology import (
    build_simulator,
    line_topology,
    random_topology,
    ring_topology,
)

ALGORITHMS = ["DV", "LS"]


def converge(simulator, duration=60):
    simulator.run(duration)
    assert simulator.converged()
    return simulator


def test_add_link_validates_nodes():
    simulator = NetworkSimulator(simpy.Environment())
    simulator.add_node(0)
    with pytest.raises(ValueError):
        simulator.add_link(0, 1, 1.0)
    simulator.add_node(1)
    with pytest.raises(ValueError):
        simulator.add_link(0, 1, 0.0)
    simulator.add_link(0, 1, 1.0)
    with pytest.raises(ValueError):
        simulator.add_link(1, 0, 1.0)
    with pytest.raises(ValueError):
        simulator.add_node(1)
    with pytest.raises(ValueError):
        simulator.add_node(-1)


def test_unknown_hook_is_rejected():
    simulator = NetworkSimulator(simpy.Environment())
    with pytest.raises(ValueError):
        simulator.register_hook("packet_hop", print)


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_line_delivers_through_intermediate_routers(algorithm):
    edges, delays = line_topology(4, delay=1.0)
    simulator = converge(build_simulator(edges, delays, algorithm))
    arrivals = []
    simulator.register_hook(
        "packet_arrived", lambda node_id, payload, sim_time: arrivals.append((node_id, payload))
    )

    assert simulator.nodes[0].routing_table[3] == 1
    assert simulator.route_cost(0, 3) == pytest.approx(3.0)
    assert simulator.nodes[0].engine.distances[3] == pytest.approx(3.0)

    forwarded_before = {n: node.packets_forwarded for n, node in simulator.nodes.items()}
    simulator.send(0, 3, {"seq": 1})
    simulator.run(10)

    assert arrivals == [(3, {"seq": 1})]
    assert simulator.interfaces[3].arrivals == [{"seq": 1}]
    forwarded = {
        n: node.packets_forwarded - forwarded_before[n] for n, node in simulator.nodes.items()
    }
    assert forwarded == {0: 1, 1: 1, 2: 1, 3: 0}


@pytest.mark.parametrize("algorithm", ALGORITHMS)
@pytest.mark.parametrize("hop_budget, delivered", [(2, False), (3, True)])
def test_hop_budget_limits_path_length(algorithm, hop_budget, delivered):
    edges, delays = line_topology(4)
    config = RouterConfig(default_hop_budget=hop_budget)
    simulator = converge(build_simulator(edges, delays, algorithm, config))

    simulator.send(0, 3, "far")
    simulator.run(10)

    assert (simulator.interfaces[3].arrivals == ["far"]) is delivered
    drops = simulator.nodes[2].packets_dropped[DropReason.HOP_LIMIT]
    assert drops == (0 if delivered else 1)


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_disconnected_nodes_never_get_a_route(algorithm):
    simulator = build_simulator([(0, 1), (2, 3)], [1.0, 1.0], algorithm)
    simulator.run(100)

    assert 2 not in simulator.nodes[0].routing_table
    assert simulator.route(0, 2) is None
    assert simulator.converged()

    for i in range(3):
        simulator.send(0, 2, i)
        simulator.run(20)
    assert simulator.interfaces[2].arrivals == []
    assert simulator.nodes[0].packets_dropped[DropReason.NO_ROUTE] == 3


@pytest.mark.parametrize("algorithm", ALGORITHMS)
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_random_topologies_converge_to_shortest_paths(algorithm, seed):
    edges, delays = random_topology(8, excess_edges=5, seed=seed)
    simulator = build_simulator(edges, delays, algorithm)
    assert nx.is_connected(simulator.graph)

    simulator.run(200)

    lengths = simulator.shortest_path_lengths()
    for source, node in simulator.nodes.items():
        for destination in simulator.nodes:
            assert node.engine.distances[destination] == pytest.approx(
                lengths[source][destination]
            )
            assert simulator.route_cost(source, destination) == pytest.approx(
                lengths[source][destination]
            )


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_converged_tables_are_stable(algorithm):
    edges, delays = random_topology(6, excess_edges=3, seed=11)
    simulator = converge(build_simulator(edges, delays, algorithm), duration=150)

    tables = {n: dict(node.routing_table) for n, node in simulator.nodes.items()}
    simulator.run(50)

    assert {n: node.routing_table for n, node in simulator.nodes.items()} == tables
    for node in simulator.nodes.values():
        assert node.engine.compute() is False


def test_each_flood_instance_is_processed_once_per_router():
    edges, delays = ring_topology(6, delay=0.5)
    edges.append((0, 3))
    delays.append(0.7)
    simulator = build_simulator(edges, delays, RoutingAlgorithm.LINK_STATE)
    simulator.run(95)

    for node_id, node in simulator.nodes.items():
        for origin, other in simulator.nodes.items():
            if origin == node_id:
                continue
            delivered = node.engine.flood_deliveries[origin]
            # no instance skipped or processed twice
            assert delivered == node.engine.latest_sequence[origin]
            # the last instance may still be on its way
            assert delivered >= other.engine.sequence - 1
        assert len(node.engine.flood_deliveries) == len(simulator.nodes) - 1
    assert sum(node.engine.duplicates_discarded for node in simulator.nodes.values()) > 0


@pytest.mark.parametrize("algorithm", ALGORITHMS)
def test_routes_follow_link_cost_drift(algorithm):
    simulator = build_simulator([(0, 1), (1, 2), (0, 2)], [1.0, 1.0, 5.0], algorithm)
    converge(simulator)
    assert simulator.route(0, 2) == [0, 1, 2]

    simulator.set_link_delay(0, 1, 8.0)
    simulator.run(150)

    assert simulator.converged()
    assert simulator.route(0, 2) == [0, 2]
    assert simulator.route(0, 1) == [0, 2, 1]


def test_link_keeps_packets_in_order_when_delay_drops():
    env = simpy.Environment()
    receiver = NetworkInterface(env, 1)
    link = Link(env, 0, 1, 5.0)
    link.connect(receiver)

    def sender():
        link.transmit("first")
        yield env.timeout(1.0)
        link.set_propagation_delay(1.0)
        link.transmit("second")

    env.process(sender())
    env.run(until=10)

    assert receiver.poll_inbound_packet() == (0, "first")
    assert receiver.poll_inbound_packet() == (0, "second")
    assert receiver.poll_inbound_packet() is None


def test_metrics_summarize_the_run():
    edges, delays = line_topology(3)
    simulator = build_simulator(edges, delays, "DV")
    simulator.packet_generator(0, 2, lambda: 5.0, start_time=41)

    metrics = simulator.run(80)

    assert metrics["algorithm"] == "DV"
    assert metrics["converged"] is True
    assert metrics["packets_sent"] == 8
    assert metrics["packets_delivered"] == metrics["packets_sent"]
    assert metrics["delivery_ratio"] == 1
    assert metrics["control_packets"]["PING"] > 0
    assert metrics["control_packets"]["DISTANCE_TABLE"] > 0
    assert "DATA" not in metrics["control_packets"]
    assert metrics["last_route_change"] is not None
    assert simulator.arrivals[0][2] == "0->2#1"
