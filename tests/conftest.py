"""Shared fixtures: a fake upstream served through ``httpx.MockTransport``."""

import asyncio
import json
import random

import httpx
import pytest

from pnodes.config import PnodesConfig
from pnodes.models import NetworkResponse
from pnodes.resolver import resolve_network_status

PRIMARY_URL = "http://primary.test"
SECONDARY_URL = "http://secondary.test"
API_URL = "http://api.test"


class FakeUpstream:
    """Routes requests by ``(host, rpc method)`` for POST, ``(host, path)`` for GET.

    A route's value decides the reply:

    * ``dict`` / ``list`` — 200 with that JSON body
    * ``int`` — empty reply with that status code
    * ``str`` — 200 with that raw text body
    * ``Exception`` instance — raised from the transport

    Unrouted requests get a 404.  Every request is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], object] = {}
        self.calls: list[tuple[str, str]] = []

    def add(self, url: str, key: str, reply: object) -> None:
        self.routes[(httpx.URL(url).host, key)] = reply

    def _handler(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            key = json.loads(request.content)["method"]
        else:
            key = request.url.path
        route = (request.url.host, key)
        self.calls.append(route)

        reply = self.routes.get(route, 404)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, int):
            return httpx.Response(reply)
        if isinstance(reply, str):
            return httpx.Response(200, text=reply)
        return httpx.Response(200, json=reply)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self._handler))

    def resolve(
        self,
        config: PnodesConfig | None = None,
        *,
        seed: int = 7,
        **kwargs: object,
    ) -> NetworkResponse:
        """Run the resolver against this upstream and return its response."""

        async def _go() -> NetworkResponse:
            async with self.client() as client:
                return await resolve_network_status(
                    config or make_config(),
                    client=client,
                    rng=random.Random(seed),
                    **kwargs,
                )

        return asyncio.run(_go())


def make_config(**overrides: object) -> PnodesConfig:
    """A config pointing at the fake hosts."""
    defaults: dict = {
        "primary_rpc_url": PRIMARY_URL,
        "secondary_rpc_url": SECONDARY_URL,
    }
    defaults.update(overrides)
    return PnodesConfig(**defaults)


def cluster_node(i: int, **overrides: object) -> dict:
    """A raw ``getClusterNodes`` entry."""
    record: dict = {
        "pubkey": f"Node{i:04d}xyz",
        "gossip": f"10.0.0.{i}:8001",
        "tpu": f"10.0.0.{i}:8003",
        "rpc": None,
        "version": "2.0.1",
    }
    record.update(overrides)
    return record


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
