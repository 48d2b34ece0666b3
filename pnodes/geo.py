"""Location estimation: octet-band heuristic with optional GeoLite2 refinement."""

import logging
import math
import random
import re
from typing import NamedTuple

import geoip2.database
import geoip2.errors
import maxminddb

logger = logging.getLogger(__name__)

_FIRST_OCTET_RE = re.compile(r"^\s*(\d+)(?:\.|$)")

# Maximum absolute noise, in degrees, added to each axis of an anchor.
ANCHOR_NOISE = 5.0


class Location(NamedTuple):
    """Approximate coordinates with a human-readable label."""

    lat: float
    lng: float
    label: str


UNKNOWN_LOCATION = Location(20.0, 0.0, "Unknown")

# ---------------------------------------------------------------------------
# Octet bands (0-63, 64-127, 128-191, 192-255) → anchor
# ---------------------------------------------------------------------------

REGION_ANCHORS: tuple[Location, ...] = (
    Location(40.7128, -74.006, "New York, US"),
    Location(51.5074, -0.1278, "London, GB"),
    Location(35.6762, 139.6503, "Tokyo, JP"),
    Location(-33.8688, 151.2093, "Sydney, AU"),
)

_BAND_WIDTH = 256 // len(REGION_ANCHORS)


def is_valid_coordinate(lat: object, lng: object) -> bool:
    """Return True if *lat*/*lng* are finite numbers within range."""
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return -90 <= lat <= 90 and -180 <= lng <= 180  # type: ignore[operator]


def first_octet(address: str) -> int | None:
    """Parse the first dotted-quad octet of *address*.

    Returns ``None`` if no leading integer is found or it falls outside
    ``[0, 255]``.
    """
    if not isinstance(address, str):
        return None
    match = _FIRST_OCTET_RE.match(address)
    if not match:
        return None
    octet = int(match.group(1))
    if not 0 <= octet <= 255:
        return None
    return octet


def anchor_for_octet(octet: int) -> Location:
    """Return the region anchor for a first octet in ``[0, 255]``."""
    return REGION_ANCHORS[min(octet // _BAND_WIDTH, len(REGION_ANCHORS) - 1)]


def estimate_location(address: str, rng: random.Random | None = None) -> Location:
    """Estimate a rough location for an IPv4 address.

    This is a coarse illustration heuristic, not geolocation: the first
    octet picks one of four anchors and each axis is jittered by up to
    ``ANCHOR_NOISE`` degrees, then clamped to the valid range.

    Args:
        address: Dotted-quad IPv4 address (anything else yields the
            neutral default).
        rng: Random source for the jitter (default: a fresh
            ``random.Random``).

    Returns:
        The estimated ``Location``; ``UNKNOWN_LOCATION`` if the first
        octet can't be parsed or is out of byte range.
    """
    octet = first_octet(address)
    if octet is None:
        return UNKNOWN_LOCATION

    rng = rng or random.Random()
    anchor = anchor_for_octet(octet)
    lat = anchor.lat + rng.uniform(-ANCHOR_NOISE, ANCHOR_NOISE)
    lng = anchor.lng + rng.uniform(-ANCHOR_NOISE, ANCHOR_NOISE)

    return Location(
        lat=max(-90.0, min(90.0, lat)),
        lng=max(-180.0, min(180.0, lng)),
        label=anchor.label,
    )


class LocationEstimator:
    """Location lookup with an optional MaxMind GeoLite2-City database.

    When a city database is configured and resolves the address to valid
    coordinates, those are used; otherwise :func:`estimate_location`
    supplies the heuristic answer.  Lookups never raise.

    Args:
        city_db_path: Path to ``GeoLite2-City.mmdb``, or ``None``.
        rng: Random source for the heuristic jitter.
    """

    def __init__(
        self,
        city_db_path: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._city_reader: geoip2.database.Reader | None = None

        if city_db_path:
            try:
                self._city_reader = geoip2.database.Reader(city_db_path)
                logger.debug("Opened GeoLite2-City DB: %s", city_db_path)
            except FileNotFoundError:
                logger.warning(
                    "GeoLite2-City DB not found at %s; using octet heuristic",
                    city_db_path,
                )
            except (maxminddb.InvalidDatabaseError, ValueError, OSError) as exc:
                logger.warning(
                    "Cannot open GeoLite2-City DB at %s (%s); using octet heuristic",
                    city_db_path,
                    exc,
                )

    def __enter__(self) -> "LocationEstimator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying database reader, if any."""
        if self._city_reader:
            self._city_reader.close()
            self._city_reader = None

    def estimate(self, address: str) -> Location:
        """Return the best available ``Location`` for *address*."""
        found = self.lookup_city(address)
        if found is not None:
            return found
        return estimate_location(address, self._rng)

    def lookup_city(self, address: str) -> Location | None:
        """Look up *address* in the city database.

        Returns:
            A ``Location`` labelled ``"City, CC"`` (or the country name
            alone), or ``None`` if there is no database, the address is
            unknown, or the record carries no usable coordinates.
        """
        if not self._city_reader:
            return None
        try:
            resp = self._city_reader.city(address)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            logger.debug("City lookup failed for %s", address)
            return None

        lat = resp.location.latitude
        lng = resp.location.longitude
        if not is_valid_coordinate(lat, lng):
            return None

        return Location(float(lat), float(lng), _city_label(resp))


def _city_label(resp: object) -> str:
    city = resp.city.name  # type: ignore[attr-defined]
    code = resp.country.iso_code  # type: ignore[attr-defined]
    country = resp.country.name  # type: ignore[attr-defined]
    if city and code:
        return f"{city}, {code}"
    return city or country or UNKNOWN_LOCATION.label
