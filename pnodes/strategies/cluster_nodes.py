"""Primary strategy: ``getClusterNodes`` on the storage-network endpoint."""

import logging
import random
from collections.abc import Callable

import httpx

from pnodes.geo import Location
from pnodes.models import Node
from pnodes.normalize import cluster_node_normalizer, normalize_batch
from pnodes.rpc import rpc_call
from pnodes.strategies import Strategy

logger = logging.getLogger(__name__)

METHOD = "getClusterNodes"


class ClusterNodesStrategy(Strategy):
    """Query ``getClusterNodes`` and normalize the returned list.

    A ``result`` that is not a non-empty list yields no nodes.
    """

    name = "cluster_nodes"

    async def fetch(
        self,
        client: httpx.AsyncClient,
        rng: random.Random,
        estimator: Callable[[str], Location],
    ) -> list[Node]:
        result = await rpc_call(client, self.url, METHOD, timeout=self.timeout)

        if not isinstance(result, list) or not result:
            logger.debug("%s returned no node list", METHOD)
            return []

        logger.debug("%s returned %d raw record(s)", METHOD, len(result))
        return normalize_batch(result, cluster_node_normalizer(rng, estimator))
