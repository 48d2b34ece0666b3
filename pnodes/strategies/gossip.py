"""Tertiary strategy: cluster topology from an independent network."""

import logging
import random
from collections.abc import Callable

import httpx

from pnodes.geo import Location
from pnodes.models import Node
from pnodes.normalize import ClusterNodeRecord, cluster_node_normalizer, normalize_batch
from pnodes.rpc import rpc_call
from pnodes.strategies import Strategy

logger = logging.getLogger(__name__)

METHOD = "getClusterNodes"


class GossipStrategy(Strategy):
    """Query ``getClusterNodes`` on the secondary network endpoint.

    Storage nodes also announce themselves on that network's gossip
    plane.  Any record exposing a ``gossip``, ``tpu`` or ``rpc`` address
    is accepted before normalization.
    """

    name = "gossip"

    async def fetch(
        self,
        client: httpx.AsyncClient,
        rng: random.Random,
        estimator: Callable[[str], Location],
    ) -> list[Node]:
        result = await rpc_call(client, self.url, METHOD, timeout=self.timeout)

        records = result if isinstance(result, list) else []
        reachable = [r for r in records if ClusterNodeRecord.has_address(r)]
        logger.debug(
            "%s: %d of %d record(s) expose an address",
            self.url,
            len(reachable),
            len(records),
        )
        if not reachable:
            return []

        return normalize_batch(reachable, cluster_node_normalizer(rng, estimator))
