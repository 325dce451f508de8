"""Router configuration for the routing simulation."""

from dataclasses import dataclass

from routing_sim.core.packet import DEFAULT_HOP_BUDGET


@dataclass
class RouterConfig:
    """Timing and protocol parameters shared by every router of a simulation.

    Attributes:
        discovery_interval: Seconds between two cost discovery/route computation cycles.
        initial_delay: Seconds before the first cycle.
        default_hop_budget: Hop budget given to freshly originated data packets.
        halve_rtt: Store half the round-trip time as the link cost (one-way estimate).
    """

    discovery_interval: float = 10.0
    initial_delay: float = 1.0
    default_hop_budget: int = DEFAULT_HOP_BUDGET
    halve_rtt: bool = True

    def validate(self) -> "RouterConfig":
        """Check the parameters.

        Returns:
            The config itself, to allow chaining.

        Raises:
            ValueError: If an interval is not positive or the hop budget is negative.
        """
        if self.discovery_interval <= 0:
            raise ValueError("discovery_interval must be positive")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")
        if self.default_hop_budget < 0:
            raise ValueError("default_hop_budget must be non-negative")
        return self
