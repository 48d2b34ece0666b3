"""Aggregator: network totals, location distribution, node performance ranking."""

import logging
from dataclasses import dataclass, field

from pnodes.models import Node

logger = logging.getLogger(__name__)

# Storage capacity (TB) that earns a full storage score.
MAX_SCORED_STORAGE_TB = 500.0
STORAGE_WEIGHT = 0.6
UPTIME_WEIGHT = 0.4

DEFAULT_TOP_N = 25


@dataclass
class NetworkStats:
    """Aggregated statistics computed from a list of nodes.

    Attributes:
        total: Number of nodes.
        active: Number of active nodes.
        offline: Number of offline nodes.
        total_storage: Sum of storage capacity in TB.
        average_uptime: Mean uptime percentage (0.0 for no nodes).
        location_distribution: ``(location, count)`` pairs sorted by
            count descending.
    """

    total: int = 0
    active: int = 0
    offline: int = 0
    total_storage: float = 0.0
    average_uptime: float = 0.0
    location_distribution: list[tuple[str, int]] = field(default_factory=list)


def aggregate(nodes: list[Node]) -> NetworkStats:
    """Compute summary statistics for *nodes*.

    Args:
        nodes: Nodes from a ``NetworkResponse``.

    Returns:
        A ``NetworkStats`` instance.
    """
    location_counts: dict[str, int] = {}
    active = 0
    total_storage = 0.0
    uptime_sum = 0.0

    for node in nodes:
        if node.status == "active":
            active += 1
        total_storage += node.storage
        uptime_sum += node.uptime
        location_counts[node.location] = location_counts.get(node.location, 0) + 1

    location_distribution = sorted(
        location_counts.items(), key=lambda item: item[1], reverse=True
    )

    return NetworkStats(
        total=len(nodes),
        active=active,
        offline=len(nodes) - active,
        total_storage=total_storage,
        average_uptime=uptime_sum / len(nodes) if nodes else 0.0,
        location_distribution=location_distribution,
    )


def aggregate_to_dict(nodes: list[Node]) -> dict:
    """Compute statistics and return them as a JSON-friendly dict."""
    stats = aggregate(nodes)
    return {
        "total": stats.total,
        "active": stats.active,
        "offline": stats.offline,
        "totalStorage": stats.total_storage,
        "averageUptime": stats.average_uptime,
        "locationDistribution": stats.location_distribution,
    }


# ------------------------------------------------------------------
# Performance ranking
# ------------------------------------------------------------------


def performance_score(node: Node) -> float:
    """Score a node by storage (60%) and uptime (40%).

    Offline nodes score 0.  Storage saturates at
    ``MAX_SCORED_STORAGE_TB``.
    """
    if node.status != "active":
        return 0.0
    storage_score = min(node.storage / MAX_SCORED_STORAGE_TB, 1.0)
    uptime_score = node.uptime / 100
    return storage_score * STORAGE_WEIGHT + uptime_score * UPTIME_WEIGHT


def find_top_node(nodes: list[Node]) -> Node | None:
    """Return the best-scoring active node, or ``None`` if there is none.

    Ties keep the earliest node.
    """
    top: Node | None = None
    top_score = -1.0
    for node in nodes:
        if node.status != "active":
            continue
        score = performance_score(node)
        if score > top_score:
            top, top_score = node, score
    return top


def get_top_nodes(nodes: list[Node], count: int = DEFAULT_TOP_N) -> list[Node]:
    """Return up to *count* active nodes, best score first.

    The sort is stable, so equal scores keep upstream order.
    """
    if count <= 0:
        return []
    active = [n for n in nodes if n.status == "active"]
    active.sort(key=performance_score, reverse=True)
    return active[:count]
