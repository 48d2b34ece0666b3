"""Secondary strategy: ``getClusterInfo`` with nodes nested in the result."""

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

METHOD = "getClusterInfo"


class ClusterInfoStrategy(Strategy):
    """Query ``getClusterInfo`` and normalize ``result.clusterNodes``."""

    name = "cluster_info"

    async def fetch(
        self,
        client: httpx.AsyncClient,
        rng: random.Random,
        estimator: Callable[[str], Location],
    ) -> list[Node]:
        result = await rpc_call(client, self.url, METHOD, timeout=self.timeout)

        records = result.get("clusterNodes") if isinstance(result, dict) else None
        if not isinstance(records, list) or not records:
            logger.debug("%s returned no clusterNodes list", METHOD)
            return []

        return normalize_batch(records, cluster_node_normalizer(rng, estimator))
