"""JSON-RPC 2.0 client helper over httpx."""

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class RPCError(Exception):
    """Raised when an upstream call fails at the transport or RPC level."""


def build_payload(method: str, params: list | None = None) -> dict:
    """Return the JSON-RPC 2.0 envelope for *method*."""
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": method,
        "params": params if params is not None else [],
    }


async def rpc_call(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    *,
    timeout: float,
    params: list | None = None,
) -> Any:
    """POST a JSON-RPC request and return its ``result`` member.

    Args:
        client: Open async HTTP client.
        url: JSON-RPC endpoint.
        method: RPC method name (e.g. ``"getClusterNodes"``).
        timeout: Request timeout in seconds.
        params: Positional params (default: ``[]``).

    Returns:
        The decoded ``result`` value (``None`` if absent).

    Raises:
        RPCError: On transport failure, non-2xx status, a body that is not
            a JSON object, or an ``error`` member in the response.
    """
    logger.debug("POST %s %s", url, method)
    try:
        response = await client.post(
            url,
            json=build_payload(method, params),
            headers=JSON_HEADERS,
            timeout=timeout,
        )
    except httpx.HTTPError as exc:
        raise RPCError(f"{method} request to {url} failed: {exc!r}") from exc

    data = decode_json(response, url)
    if not isinstance(data, dict):
        raise RPCError(f"{url} returned a non-object JSON body for {method}")

    error = data.get("error")
    if error is not None:
        message = error.get("message") if isinstance(error, dict) else None
        raise RPCError(f"{method} on {url}: {message or 'RPC error'}")

    return data.get("result")


async def get_json(client: httpx.AsyncClient, url: str, *, timeout: float) -> Any:
    """GET *url* and return the decoded JSON body.

    Raises:
        RPCError: On transport failure, non-2xx status or non-JSON body.
    """
    logger.debug("GET %s", url)
    try:
        response = await client.get(url, headers=JSON_HEADERS, timeout=timeout)
    except httpx.HTTPError as exc:
        raise RPCError(f"GET {url} failed: {exc!r}") from exc
    return decode_json(response, url)


def decode_json(response: httpx.Response, url: str) -> Any:
    """Check the status of *response* and decode its JSON body.

    Raises:
        RPCError: On a non-2xx status or a body that isn't valid JSON.
    """
    if not response.is_success:
        raise RPCError(f"{url} responded with status {response.status_code}")
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RPCError(f"{url} returned a non-JSON body") from exc
