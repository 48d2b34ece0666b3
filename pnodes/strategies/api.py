"""First-party API strategy: flat node records over REST."""

import logging
import random
from collections.abc import Callable, Iterable

import httpx

from pnodes.config import DEFAULT_API_PATHS
from pnodes.geo import Location
from pnodes.models import Node
from pnodes.normalize import api_node_normalizer, normalize_batch
from pnodes.rpc import RPCError, get_json
from pnodes.strategies import Strategy

logger = logging.getLogger(__name__)


class ApiStrategy(Strategy):
    """GET each candidate path under the API base URL until one has nodes.

    A body is accepted if it is a list of records or an object with a
    ``nodes`` list.  Records go through the flat API normalizer, which
    repairs instead of dropping.

    Args:
        url: API base URL.
        timeout: Seconds allowed for the whole attempt.
        paths: Paths tried in order.
    """

    name = "api"

    def __init__(
        self,
        url: str,
        timeout: float,
        paths: Iterable[str] = DEFAULT_API_PATHS,
    ) -> None:
        super().__init__(url.rstrip("/"), timeout)
        self.paths = tuple(paths)

    async def fetch(
        self,
        client: httpx.AsyncClient,
        rng: random.Random,
        estimator: Callable[[str], Location],
    ) -> list[Node]:
        for path in self.paths:
            url = f"{self.url}{path}"
            try:
                body = await get_json(client, url, timeout=self.timeout)
            except RPCError as exc:
                logger.debug("Skipping %s: %s", url, exc)
                continue

            records = _extract_records(body)
            if not records:
                continue

            nodes = normalize_batch(records, api_node_normalizer(rng))
            if nodes:
                return nodes

        return []


def _extract_records(body: object) -> list | None:
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("nodes"), list):
        return body["nodes"]
    return None
