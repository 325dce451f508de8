"""Traffic generation for the routing simulation.

This module provides interval generators (constant, variable, Poisson) and
payload factories for the data traffic the routers carry.
"""
