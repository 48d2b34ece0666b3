"""Simulation generator: randomized fallback node set."""

import logging
import random
from typing import NamedTuple

from pnodes.models import Node

logger = logging.getLogger(__name__)

DEFAULT_SIMULATION_COUNT = 50

# Synthesized telemetry ranges (half-open).
STORAGE_RANGE_TB = (1.0, 500.0)
UPTIME_RANGE_PCT = (85.0, 99.9)

ACTIVE_PROBABILITY = 0.9


class CityAnchor(NamedTuple):
    """A real-world city that simulated nodes cluster around.

    ``spread`` is the full width, in degrees, of the uniform jitter
    applied to each axis.
    """

    lat: float
    lng: float
    spread: float
    label: str


CITY_ANCHORS: tuple[CityAnchor, ...] = (
    CityAnchor(40.7128, -74.006, 15, "New York, US"),
    CityAnchor(51.5074, -0.1278, 10, "London, GB"),
    CityAnchor(35.6762, 139.6503, 8, "Tokyo, JP"),
    CityAnchor(37.7749, -122.4194, 12, "San Francisco, US"),
    CityAnchor(52.52, 13.405, 10, "Berlin, DE"),
    CityAnchor(-33.8688, 151.2093, 8, "Sydney, AU"),
    CityAnchor(1.3521, 103.8198, 6, "Singapore, SG"),
    CityAnchor(55.7558, 37.6173, 10, "Moscow, RU"),
    CityAnchor(48.8566, 2.3522, 8, "Paris, FR"),
    CityAnchor(39.9042, 116.4074, 10, "Beijing, CN"),
    CityAnchor(19.4326, -99.1332, 12, "Mexico City, MX"),
    CityAnchor(-23.5505, -46.6333, 10, "São Paulo, BR"),
)


def random_ip(rng: random.Random) -> str:
    """Return a random dotted-quad address (each octet in ``[0, 255)``)."""
    return ".".join(str(rng.randrange(255)) for _ in range(4))


def random_pubkey(rng: random.Random) -> str:
    """Return a random 64-character lowercase hex string."""
    return f"{rng.getrandbits(256):064x}"


def synth_storage(rng: random.Random) -> float:
    """Storage capacity in TB, uniform over ``STORAGE_RANGE_TB``."""
    low, high = STORAGE_RANGE_TB
    return low + rng.random() * (high - low)


def synth_uptime(rng: random.Random) -> float:
    """Uptime percentage, uniform over ``UPTIME_RANGE_PCT``."""
    low, high = UPTIME_RANGE_PCT
    return low + rng.random() * (high - low)


def generate_simulation(
    count: int = DEFAULT_SIMULATION_COUNT,
    rng: random.Random | None = None,
) -> list[Node]:
    """Generate *count* simulated nodes.

    Coordinates cluster around ``CITY_ANCHORS`` and are not clamped; the
    anchors and spreads keep every jittered point in range.

    Args:
        count: Number of nodes to generate.
        rng: Random source (default: a fresh ``random.Random``).  Pass a
            seeded instance for reproducible output.

    Returns:
        The generated nodes, in generation order.

    Raises:
        ValueError: If *count* is negative.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")

    rng = rng or random.Random()
    nodes = [_simulated_node(rng) for _ in range(count)]
    logger.debug("Generated %d simulated node(s)", len(nodes))
    return nodes


def _simulated_node(rng: random.Random) -> Node:
    storage = synth_storage(rng)
    uptime = synth_uptime(rng)
    status = "active" if rng.random() < ACTIVE_PROBABILITY else "offline"
    anchor = rng.choice(CITY_ANCHORS)

    return Node(
        pubkey=random_pubkey(rng),
        ip=random_ip(rng),
        storage=round(storage, 2),
        uptime=round(uptime, 2),
        lat=anchor.lat + (rng.random() - 0.5) * anchor.spread,
        lng=anchor.lng + (rng.random() - 0.5) * anchor.spread,
        status=status,
        location=anchor.label,
    )
