"""Core components for the routing simulation.

This module contains the fundamental classes of the simulation, including
Packet, Link, NetworkInterface, LinkProbe, the routing engines,
PacketForwarder, Node and NetworkSimulator.
"""
