"""Network status resolver: ordered strategy chain with simulation fallback."""

import asyncio
import logging
import random
import time
from collections.abc import Sequence

import httpx

from pnodes.config import PnodesConfig
from pnodes.geo import LocationEstimator
from pnodes.models import NetworkResponse, Node
from pnodes.rpc import RPCError
from pnodes.simulation import DEFAULT_SIMULATION_COUNT, generate_simulation
from pnodes.strategies import Strategy, build_chain

logger = logging.getLogger(__name__)

SIMULATION_SOURCE = "simulation"


async def resolve_network_status(
    config: PnodesConfig | None = None,
    *,
    strategies: Sequence[Strategy] | None = None,
    client: httpx.AsyncClient | None = None,
    rng: random.Random | None = None,
) -> NetworkResponse:
    """Resolve the current network status.

    Strategies are tried strictly in order, each bounded by its own
    timeout.  The first one that yields at least one normalized node
    wins and the rest are skipped.  When none does, a simulation
    response is returned.  No exception escapes this function.

    Args:
        config: Configuration (default: ``PnodesConfig()``).
        strategies: Explicit chain (default: ``build_chain(config)``).
        client: HTTP client to use.  A caller-supplied client is left
            open; otherwise one is created and closed here.
        rng: Random source for synthesized values and the simulation.

    Returns:
        A ``NetworkResponse`` with status ``"live"`` or ``"simulation"``.
    """
    cfg = config or PnodesConfig()
    rng = rng or random.Random()

    if cfg.force_simulation:
        logger.info("Simulation forced by configuration")
        return _simulation_response(cfg, rng)

    try:
        chain = list(strategies) if strategies is not None else build_chain(cfg)
        nodes, source = await _run_chain(chain, cfg, client, rng)
    except Exception:
        logger.exception("Strategy chain failed unexpectedly")
        nodes, source = [], None

    if nodes:
        return NetworkResponse.build(nodes, "live", source=source)

    logger.info("No live source available; falling back to simulation")
    return _simulation_response(cfg, rng)


def resolve_network_status_sync(
    config: PnodesConfig | None = None,
    **kwargs: object,
) -> NetworkResponse:
    """Blocking wrapper around :func:`resolve_network_status`."""
    return asyncio.run(resolve_network_status(config, **kwargs))  # type: ignore[arg-type]


async def _run_chain(
    chain: Sequence[Strategy],
    cfg: PnodesConfig,
    client: httpx.AsyncClient | None,
    rng: random.Random,
) -> tuple[list[Node], str | None]:
    """Run *chain* and return ``(nodes, strategy_name)`` of the first hit."""
    if not chain:
        return [], None

    estimator = LocationEstimator(city_db_path=cfg.maxmind_city_db, rng=rng)
    try:
        if client is not None:
            return await _try_each(chain, client, rng, estimator)
        async with httpx.AsyncClient(follow_redirects=True) as own_client:
            return await _try_each(chain, own_client, rng, estimator)
    finally:
        estimator.close()


async def _try_each(
    chain: Sequence[Strategy],
    client: httpx.AsyncClient,
    rng: random.Random,
    estimator: LocationEstimator,
) -> tuple[list[Node], str | None]:
    for strategy in chain:
        nodes = await attempt(strategy, client, rng, estimator)
        if nodes:
            return nodes, strategy.name
    return [], None


async def attempt(
    strategy: Strategy,
    client: httpx.AsyncClient,
    rng: random.Random,
    estimator: LocationEstimator,
) -> list[Node]:
    """Run one strategy attempt, containing every failure.

    Returns:
        The strategy's nodes, or ``[]`` if it failed, timed out or found
        nothing usable.
    """
    logger.debug("Trying strategy %s", strategy)
    t0 = time.monotonic()
    try:
        nodes = await asyncio.wait_for(
            strategy.fetch(client, rng, estimator.estimate),
            timeout=strategy.timeout,
        )
    except TimeoutError:
        logger.warning(
            "Strategy %s timed out after %.1fs", strategy.name, strategy.timeout
        )
        return []
    except RPCError as exc:
        logger.warning("Strategy %s failed: %s", strategy.name, exc)
        return []
    except Exception:
        logger.exception("Strategy %s raised unexpectedly", strategy.name)
        return []

    duration = time.monotonic() - t0
    if not nodes:
        logger.warning(
            "Strategy %s returned no usable nodes (%.2fs)", strategy.name, duration
        )
        return []

    logger.info(
        "Strategy %s returned %d node(s) in %.2fs",
        strategy.name,
        len(nodes),
        duration,
    )
    return list(nodes)


def _simulation_response(cfg: PnodesConfig, rng: random.Random) -> NetworkResponse:
    try:
        nodes = generate_simulation(max(int(cfg.simulation_count), 0), rng)
    except (TypeError, ValueError, OverflowError):
        logger.warning(
            "Invalid simulation_count %r; generating %d nodes",
            cfg.simulation_count,
            DEFAULT_SIMULATION_COUNT,
        )
        nodes = generate_simulation(DEFAULT_SIMULATION_COUNT, rng)
    return NetworkResponse.build(nodes, "simulation", source=SIMULATION_SOURCE)
