"""Dynamic routing simulation.

Routers discover link costs by probing their neighbors and compute routes
with either a distance-vector or a link-state protocol, without any central
coordinator.
"""

__version__ = "0.1.0"
