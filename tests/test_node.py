import pytest
import simpy

from routing_sim.core.config import RouterConfig
from routing_sim.core.enums import DropReason, PacketKind
from routing_sim.core.interface import NetworkInterface
from routing_sim.core.link import Link
from routing_sim.core.node import Node
from routing_sim.core.packet import data_packet, link_state_advertisement, ping_probe, pong_reply


def make_pair(env, algorithm="DV", config=None):
    interfaces = {n: NetworkInterface(env, n) for n in (0, 1)}
    for source, target in ((0, 1), (1, 0)):
        link = Link(env, source, target, 0.5)
        link.connect(interfaces[target])
        interfaces[source].attach(link)
    nodes = {n: Node(env, n, interfaces[n], algorithm, config) for n in (0, 1)}
    return nodes, interfaces


def test_node_rejects_foreign_interface():
    env = simpy.Environment()
    with pytest.raises(ValueError):
        Node(env, 1, NetworkInterface(env, 0))


def test_unknown_algorithm_is_rejected():
    env = simpy.Environment()
    with pytest.raises(ValueError):
        Node(env, 0, NetworkInterface(env, 0), "RIP")


def test_invalid_config_is_rejected():
    env = simpy.Environment()
    with pytest.raises(ValueError):
        Node(env, 0, NetworkInterface(env, 0), config=RouterConfig(discovery_interval=0))


def test_unrecognized_packets_are_dropped(caplog):
    env = simpy.Environment()
    nodes, _ = make_pair(env, "DV")

    nodes[0].dispatch(1, "not a packet")
    nodes[0].dispatch(1, link_state_advertisement(1, {0: 1.0}, sequence=1))

    assert nodes[0].packets_dropped[DropReason.UNRECOGNIZED] == 2
    assert "unrecognized packet" in caplog.text


def test_local_traffic_for_self_is_delivered():
    env = simpy.Environment()
    nodes, interfaces = make_pair(env)
    interfaces[0].transmit(0, "loopback")

    nodes[0].start()
    env.run(until=0.1)

    assert interfaces[0].arrivals == ["loopback"]
    assert nodes[0].packets_delivered == 1


def test_first_discovery_waits_for_initial_delay():
    env = simpy.Environment()
    nodes, _ = make_pair(env, config=RouterConfig(initial_delay=1.0, discovery_interval=10.0))
    for node in nodes.values():
        node.start()

    env.run(until=0.9)
    assert nodes[0].probe.probes_sent == 0

    env.run(until=1.1)
    assert nodes[0].probe.probes_sent == 1

    env.run(until=11.1)
    assert nodes[0].probe.probes_sent == 2


def test_probe_round_trip_measures_link_delay():
    env = simpy.Environment()
    nodes, _ = make_pair(env)
    for node in nodes.values():
        node.start()

    env.run(until=3)

    assert nodes[0].neighbor_costs == {1: pytest.approx(0.5)}
    assert nodes[1].neighbor_costs == {0: pytest.approx(0.5)}


def test_idle_node_wakes_up_on_inbound_packet():
    env = simpy.Environment()
    nodes, interfaces = make_pair(env, config=RouterConfig(initial_delay=100.0))
    nodes[0].start()

    def inject():
        yield env.timeout(2.0)
        interfaces[0].receive(1, ping_probe(1, 0, env.now))

    env.process(inject())
    env.run(until=2.1)

    # the pong is on its way back to node 1
    assert interfaces[0].links[0].packets_by_kind["PONG"] == 1


def test_dispatch_order_handles_one_outbound_then_one_inbound():
    env = simpy.Environment()
    nodes, interfaces = make_pair(env, config=RouterConfig(initial_delay=5.0))
    seen = []
    node = nodes[0]
    node.originate = lambda destination, payload: seen.append(("out", payload))
    node.dispatch = lambda originator, packet: seen.append(("in", packet.kind))
    interfaces[0].transmit(1, "a")
    interfaces[0].transmit(1, "b")
    interfaces[0].receive(1, ping_probe(1, 0, 0.0))

    node.start()
    env.run(until=0.1)

    assert seen == [("out", "a"), ("in", PacketKind.PING), ("out", "b")]


def corrupted(packet, **fields):
    """Bypass construction checks, as a faulty sender would."""
    for name, value in fields.items():
        object.__setattr__(packet, name, value)
    return packet


def test_malformed_packets_do_not_stop_the_router(caplog):
    env = simpy.Environment()
    nodes, interfaces = make_pair(env, config=RouterConfig(initial_delay=100.0))
    nodes[0].start()

    def inject():
        yield env.timeout(1.0)
        interfaces[0].receive(1, corrupted(data_packet(1, 5, "x"), hop_budget=None))
        interfaces[0].receive(1, corrupted(pong_reply(1, 0, 0.0), timestamp="x"))
        yield env.timeout(1.0)
        interfaces[0].receive(1, ping_probe(1, 0, env.now))

    env.process(inject())
    env.run(until=3)

    assert nodes[0].packets_dropped[DropReason.MALFORMED] == 2
    assert "malformed" in caplog.text
    assert interfaces[0].links[0].packets_by_kind["PONG"] == 1
    assert nodes[0].process.is_alive


def test_idle_wakeups_share_one_discovery_timeout(monkeypatch):
    env = simpy.Environment()
    nodes, interfaces = make_pair(env, config=RouterConfig(initial_delay=100.0))
    delays = []
    timeout = env.timeout

    def recording_timeout(delay, value=None):
        delays.append(delay)
        return timeout(delay, value)

    monkeypatch.setattr(env, "timeout", recording_timeout)
    nodes[0].start()

    def inject():
        for _ in range(20):
            yield env.timeout(1.0)
            interfaces[0].receive(1, "noise")

    env.process(inject())
    env.run(until=30)

    assert nodes[0].packets_dropped[DropReason.UNRECOGNIZED] == 20
    # everything but the injector's one-second steps is a discovery timeout
    assert len([d for d in delays if d != 1.0]) == 1
