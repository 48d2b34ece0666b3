"""Strategy chain: abstract Strategy base class and chain builder."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    import httpx

    from pnodes.config import PnodesConfig
    from pnodes.geo import Location
    from pnodes.models import Node


class Strategy(ABC):
    """One upstream query method tried by the resolver.

    A strategy performs a single attempt and returns the normalized nodes
    it obtained.  Returning ``[]`` means "nothing usable here"; raising
    means the attempt failed.  Either way the resolver moves on.

    Args:
        url: Endpoint the strategy queries.
        timeout: Seconds allowed for the whole attempt.
    """

    #: Short name used in logs and in ``NetworkResponse.source``.
    name: str = "strategy"

    def __init__(self, url: str, timeout: float) -> None:
        self.url = url
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"{type(self).__name__}(url={self.url!r}, timeout={self.timeout})"

    @abstractmethod
    async def fetch(
        self,
        client: httpx.AsyncClient,
        rng: random.Random,
        estimator: Callable[[str], Location],
    ) -> list[Node]:
        """Query the endpoint and return normalized nodes.

        Args:
            client: Open async HTTP client.
            rng: Random source for synthesized node values.
            estimator: ``address -> Location`` lookup.

        Returns:
            Normalized nodes, possibly empty.
        """


def _build_registry() -> dict[str, type[Strategy]]:
    """Build the strategy-name → Strategy-class mapping.

    Imports are deferred to avoid circular imports.
    """
    from pnodes.strategies.api import ApiStrategy
    from pnodes.strategies.cluster_info import ClusterInfoStrategy
    from pnodes.strategies.cluster_nodes import ClusterNodesStrategy
    from pnodes.strategies.gossip import GossipStrategy

    return {
        ClusterNodesStrategy.name: ClusterNodesStrategy,
        ClusterInfoStrategy.name: ClusterInfoStrategy,
        GossipStrategy.name: GossipStrategy,
        ApiStrategy.name: ApiStrategy,
    }


def registered_strategies() -> list[str]:
    """Return a sorted list of all registered strategy names."""
    return sorted(_build_registry())


def build_chain(config: PnodesConfig) -> list[Strategy]:
    """Build the ordered strategy chain for *config*.

    Order: ``cluster_nodes`` and ``cluster_info`` against the primary
    endpoint, ``gossip`` against the secondary endpoint, then ``api``
    when ``config.api_base_url`` is set.

    Args:
        config: Loaded configuration.

    Returns:
        Strategies in the order the resolver must try them.
    """
    registry = _build_registry()
    chain: list[Strategy] = [
        registry["cluster_nodes"](config.primary_rpc_url, config.primary_timeout),
        registry["cluster_info"](config.primary_rpc_url, config.secondary_timeout),
        registry["gossip"](config.secondary_rpc_url, config.tertiary_timeout),
    ]
    if config.api_base_url:
        chain.append(
            registry["api"](
                config.api_base_url,
                config.api_timeout,
                paths=config.api_paths,
            )
        )
    return chain
