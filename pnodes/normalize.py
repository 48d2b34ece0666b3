"""Node normalizers: raw upstream record shapes → canonical ``Node``.

Two upstream shapes are known:

* ``ClusterNodeRecord`` — the JSON-RPC cluster topology entry
  (``getClusterNodes`` / ``getClusterInfo``).  Carries addresses and an
  identity but no telemetry.
* ``ApiNodeRecord`` — a flat record from a first-party REST API, which
  may carry coordinates, capacity and uptime directly.

Each shape has a ``from_mapping`` probe that picks values out of the
aliased keys, and a dedicated normalizer.
"""

from __future__ import annotations

import logging
import math
import random
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pnodes.geo import UNKNOWN_LOCATION, Location, estimate_location, is_valid_coordinate
from pnodes.models import Node
from pnodes.simulation import random_ip, random_pubkey, synth_storage, synth_uptime

logger = logging.getLogger(__name__)

IPV4_RE = re.compile(r"(\d+\.\d+\.\d+\.\d+)")

# Address fields in priority order: gossip, then tpu, then rpc.
_ADDRESS_ALIASES: tuple[tuple[str, ...], ...] = (
    ("gossip", "gossipAddr", "gossipAddress"),
    ("tpu", "tpuAddress"),
    ("rpc", "rpcAddress"),
)
_IDENTITY_ALIASES = ("pubkey", "identity", "publicKey")

Estimator = Callable[[str], Location]
T = TypeVar("T")


def _first_present(obj: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Return the first truthy value among *keys*, else ``None``."""
    for key in keys:
        value = obj.get(key)
        if value:
            return value
    return None


def _first_set(obj: Mapping[str, Any], keys: Iterable[str]) -> Any:
    """Like ``_first_present`` but keeps falsy values such as ``0``."""
    for key in keys:
        value = obj.get(key)
        if value is not None and value != "":
            return value
    return None


# ---------------------------------------------------------------------------
# RPC cluster-topology shape
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClusterNodeRecord:
    """One entry of a ``getClusterNodes`` result.

    Attributes:
        address: First present of the gossip, tpu and rpc addresses
            (``"ip:port"`` or a bare IP), or ``None``.
        identity: Raw identity value; may be a non-string object.
        version: Reported software version, if any.
    """

    address: Any
    identity: Any
    version: Any = None

    @classmethod
    def from_mapping(cls, obj: object) -> ClusterNodeRecord | None:
        """Probe *obj* for the topology fields; ``None`` if not a mapping."""
        if not isinstance(obj, Mapping):
            return None
        address = None
        for aliases in _ADDRESS_ALIASES:
            address = _first_present(obj, aliases)
            if address:
                break
        return cls(
            address=address,
            identity=_first_present(obj, _IDENTITY_ALIASES),
            version=obj.get("version"),
        )

    @staticmethod
    def has_address(obj: object) -> bool:
        """True if *obj* exposes a ``gossip``, ``tpu`` or ``rpc`` field."""
        return isinstance(obj, Mapping) and any(
            obj.get(key) for key in ("gossip", "tpu", "rpc")
        )


def _identity_to_str(identity: Any) -> str:
    if isinstance(identity, str):
        return identity
    if isinstance(identity, bytes):
        return identity.hex()
    # Key objects expose their canonical text form through __str__.
    return str(identity)


def normalize_cluster_node(
    record: ClusterNodeRecord,
    rng: random.Random,
    estimator: Estimator | None = None,
) -> Node | None:
    """Convert a cluster-topology record into a ``Node``.

    The topology feed has no telemetry, so ``storage`` and ``uptime`` are
    synthesized from *rng* within the same ranges the simulation uses.

    Args:
        record: The probed record.
        rng: Random source for synthesized values.
        estimator: ``address -> Location`` callable (default:
            :func:`estimate_location` with *rng*).

    Returns:
        The node, or ``None`` when the record has no address or no
        identity.
    """
    if not record.address:
        return None

    match = IPV4_RE.search(str(record.address))
    ip = match.group(1) if match else random_ip(rng)

    if record.identity is None or record.identity == "":
        return None
    pubkey = _identity_to_str(record.identity).strip()
    if not pubkey:
        return None

    if estimator is None:
        location = estimate_location(ip, rng)
    else:
        location = estimator(ip)
    if not is_valid_coordinate(location.lat, location.lng):
        location = UNKNOWN_LOCATION

    status = "active" if (record.version or record.address) else "offline"

    return Node(
        pubkey=pubkey,
        ip=ip,
        storage=synth_storage(rng),
        uptime=synth_uptime(rng),
        lat=location.lat,
        lng=location.lng,
        status=status,
        location=location.label,
    )


# ---------------------------------------------------------------------------
# Flat first-party API shape
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ApiNodeRecord:
    """A flat node record served by the first-party REST API."""

    pubkey: Any = None
    ip: Any = None
    lat: Any = None
    lng: Any = None
    storage: Any = None
    uptime: Any = None
    status: Any = None
    online: Any = None
    location: Any = None

    @classmethod
    def from_mapping(cls, obj: object) -> ApiNodeRecord | None:
        """Probe *obj* for the flat API fields; ``None`` if not a mapping."""
        if not isinstance(obj, Mapping):
            return None
        return cls(
            pubkey=_first_present(obj, ("pubkey", "id", "address")),
            ip=_first_present(obj, ("ip", "ipAddress")),
            lat=_first_set(obj, ("lat", "latitude")),
            lng=_first_set(obj, ("lng", "longitude")),
            storage=_first_set(obj, ("storage", "capacity")),
            uptime=_first_set(obj, ("uptime", "uptimePercentage")),
            status=obj.get("status"),
            online=obj.get("online"),
            location=_first_present(obj, ("location", "city")),
        )


def _to_float(value: Any) -> float | None:
    """Coerce numbers and numeric strings to a finite float."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def normalize_api_node(record: ApiNodeRecord, rng: random.Random) -> Node:
    """Convert a flat API record into a ``Node``.

    This endpoint is first-party, so records are repaired rather than
    dropped: invalid coordinates become ``(20, 0)``, missing identity and
    address are randomized, missing telemetry is synthesized.
    """
    lat = _to_float(record.lat)
    lng = _to_float(record.lng)
    if lat is None or lng is None or not is_valid_coordinate(lat, lng):
        lat, lng = UNKNOWN_LOCATION.lat, UNKNOWN_LOCATION.lng

    storage = _to_float(record.storage)
    storage = synth_storage(rng) if storage is None else max(0.0, storage)

    uptime = _to_float(record.uptime)
    uptime = synth_uptime(rng) if uptime is None else max(0.0, min(100.0, uptime))

    pubkey = str(record.pubkey).strip() if record.pubkey else ""
    ip = str(record.ip).strip() if record.ip else ""

    active = record.status == "active" or bool(record.online)

    return Node(
        pubkey=pubkey or random_pubkey(rng),
        ip=ip or random_ip(rng),
        storage=storage,
        uptime=uptime,
        lat=lat,
        lng=lng,
        status="active" if active else "offline",
        location=str(record.location) if record.location else UNKNOWN_LOCATION.label,
    )


# ---------------------------------------------------------------------------
# Batches
# ---------------------------------------------------------------------------


def normalize_batch(
    raw: Iterable[object],
    normalizer: Callable[[object], T | None],
) -> list[T]:
    """Normalize every raw record, dropping unusable ones.

    A record for which *normalizer* returns ``None`` or raises is dropped;
    the rest of the batch is unaffected.  Order is preserved.
    """
    out: list[T] = []
    dropped = 0
    for item in raw:
        try:
            node = normalizer(item)
        except Exception:  # noqa: BLE001
            logger.debug("Dropping record that failed to normalize: %r", item, exc_info=True)
            node = None
        if node is None:
            dropped += 1
            continue
        out.append(node)

    if dropped:
        logger.debug("Dropped %d unusable record(s)", dropped)
    return out


def cluster_node_normalizer(
    rng: random.Random,
    estimator: Estimator | None = None,
) -> Callable[[object], Node | None]:
    """Build a raw-object → ``Node`` callable for the topology shape."""

    def _normalize(obj: object) -> Node | None:
        record = ClusterNodeRecord.from_mapping(obj)
        if record is None:
            return None
        return normalize_cluster_node(record, rng, estimator)

    return _normalize


def api_node_normalizer(rng: random.Random) -> Callable[[object], Node | None]:
    """Build a raw-object → ``Node`` callable for the flat API shape."""

    def _normalize(obj: object) -> Node | None:
        record = ApiNodeRecord.from_mapping(obj)
        if record is None:
            return None
        return normalize_api_node(record, rng)

    return _normalize
