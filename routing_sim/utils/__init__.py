"""Utilities for building topologies, saving metrics and plotting results."""
