"""Data models: Node and NetworkResponse dataclasses, JSON boundary helpers."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

NodeStatus = Literal["active", "offline"]
SourceMode = Literal["live", "simulation"]


@dataclass(frozen=True)
class Node:
    """A storage-network node in its canonical form.

    Every ``Node`` that leaves the resolver has finite, in-range
    coordinates and a non-empty ``pubkey``.

    Attributes:
        pubkey: Opaque node identity (usually a fixed-width hex or
            base58 string; not verified).
        ip: Dotted-quad IPv4 address.
        storage: Storage capacity in terabytes, non-negative.
        uptime: Uptime percentage in ``[0, 100]``.
        lat: Latitude in ``[-90, 90]``.
        lng: Longitude in ``[-180, 180]``.
        status: ``"active"`` or ``"offline"``.
        location: Human-readable place name; may be ``"Unknown"``.
    """

    pubkey: str
    ip: str
    storage: float
    uptime: float
    lat: float
    lng: float
    status: NodeStatus
    location: str

    def to_dict(self) -> dict:
        """Return the node in its wire shape."""
        return {
            "pubkey": self.pubkey,
            "ip": self.ip,
            "storage": self.storage,
            "uptime": self.uptime,
            "lat": self.lat,
            "lng": self.lng,
            "status": self.status,
            "location": self.location,
        }


@dataclass(frozen=True)
class NetworkResponse:
    """Result of one network-status resolution.

    Built fresh on every call and never mutated afterwards. Use
    :meth:`build` so that ``node_count`` always matches ``nodes``.

    Attributes:
        nodes: Nodes in upstream (or generation) order.
        status: ``"live"`` when the nodes came from a reachable upstream,
            ``"simulation"`` otherwise.
        node_count: ``len(nodes)``.
        last_updated: When the response was assembled (UTC).
        source: Name of the strategy that produced the nodes.
    """

    nodes: list[Node]
    status: SourceMode
    node_count: int
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))
    source: str | None = None

    @classmethod
    def build(
        cls,
        nodes: list[Node],
        status: SourceMode,
        source: str | None = None,
    ) -> "NetworkResponse":
        """Assemble a response stamped with the current UTC time."""
        return cls(
            nodes=list(nodes),
            status=status,
            node_count=len(nodes),
            last_updated=datetime.now(UTC),
            source=source,
        )


def empty_response() -> NetworkResponse:
    """Return the local stand-in used when the transport to a caller fails.

    An empty simulation-mode response: rendering it shows "no data"
    instead of an error state.
    """
    return NetworkResponse.build([], "simulation", source=None)


# ---------------------------------------------------------------------------
# Serialization boundary
# ---------------------------------------------------------------------------


def response_to_dict(response: NetworkResponse) -> dict:
    """Convert a ``NetworkResponse`` to a JSON-serializable dict.

    The timestamp is rendered as an ISO-8601 string under
    ``lastUpdated``.
    """
    return {
        "nodes": [node.to_dict() for node in response.nodes],
        "status": response.status,
        "nodeCount": response.node_count,
        "lastUpdated": response.last_updated.isoformat(),
        "source": response.source,
    }


def response_from_dict(data: dict) -> NetworkResponse:
    """Rebuild a ``NetworkResponse`` from its serialized form.

    Args:
        data: A dict as produced by :func:`response_to_dict` (e.g. after
            a JSON round trip).

    Returns:
        The reconstructed response, with ``last_updated`` as a
        timezone-aware ``datetime`` (naive timestamps are taken as UTC).

    Raises:
        ValueError: If required keys are missing or malformed.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    try:
        raw_nodes = data["nodes"]
        status = data["status"]
        stamp = data["lastUpdated"]
    except KeyError as exc:
        raise ValueError(f"Missing key in network response: {exc}") from exc

    if status not in ("live", "simulation"):
        raise ValueError(f"Unknown status {status!r}")
    if not isinstance(raw_nodes, list):
        raise ValueError("'nodes' must be a list")

    try:
        nodes = [_node_from_dict(item) for item in raw_nodes]
        last_updated = datetime.fromisoformat(stamp)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed network response: {exc}") from exc

    if last_updated.tzinfo is None:
        last_updated = last_updated.replace(tzinfo=UTC)

    return NetworkResponse(
        nodes=nodes,
        status=status,
        node_count=len(nodes),
        last_updated=last_updated,
        source=data.get("source"),
    )


def _node_from_dict(item: dict) -> Node:
    status = item["status"]
    if status not in ("active", "offline"):
        raise ValueError(f"Unknown node status {status!r}")
    return Node(
        pubkey=str(item["pubkey"]),
        ip=str(item["ip"]),
        storage=float(item["storage"]),
        uptime=float(item["uptime"]),
        lat=float(item["lat"]),
        lng=float(item["lng"]),
        status=status,
        location=str(item["location"]),
    )
