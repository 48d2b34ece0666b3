"""YAML configuration file loading and environment overrides."""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".pnodes"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"

DEFAULT_PRIMARY_RPC_URL = "https://rpc.xandeum.network"
DEFAULT_SECONDARY_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_API_PATHS = (
    "/api/nodes",
    "/api/pnodes",
    "/api/storage-nodes",
    "/api/v1/nodes",
)

# Environment variables that override the endpoint URLs.
ENV_PRIMARY_RPC_URL = "PNODES_PRIMARY_RPC_URL"
ENV_SECONDARY_RPC_URL = "PNODES_SECONDARY_RPC_URL"
ENV_API_BASE_URL = "PNODES_API_BASE_URL"


@dataclass
class PnodesConfig:
    """Top-level configuration for the resolver.

    Every field has a default so a resolution works with no config file
    at all.

    Attributes:
        primary_rpc_url: JSON-RPC endpoint of the storage network
            (queried by the primary and secondary strategies).
        secondary_rpc_url: JSON-RPC endpoint of the independent network
            queried by the tertiary strategy.
        api_base_url: Base URL of a first-party REST API serving flat
            node records; ``None`` leaves that strategy out of the chain.
        api_paths: Paths tried, in order, under ``api_base_url``.
        primary_timeout: Seconds allowed for the primary strategy.
        secondary_timeout: Seconds allowed for the secondary strategy.
        tertiary_timeout: Seconds allowed for the tertiary strategy.
        api_timeout: Seconds allowed for the first-party API strategy.
        simulation_count: Number of nodes in a simulation response.
        force_simulation: Skip the live chain entirely.
        maxmind_city_db: Path to GeoLite2-City.mmdb, or ``None``.
    """

    primary_rpc_url: str = DEFAULT_PRIMARY_RPC_URL
    secondary_rpc_url: str = DEFAULT_SECONDARY_RPC_URL
    api_base_url: str | None = None
    api_paths: tuple[str, ...] = field(default=DEFAULT_API_PATHS)
    primary_timeout: float = 10.0
    secondary_timeout: float = 10.0
    tertiary_timeout: float = 15.0
    api_timeout: float = 5.0
    simulation_count: int = 50
    force_simulation: bool = False
    maxmind_city_db: str | None = None


_TIMEOUT_FIELDS = (
    "primary_timeout",
    "secondary_timeout",
    "tertiary_timeout",
    "api_timeout",
)

_ENV_TO_FIELD: dict[str, str] = {
    ENV_PRIMARY_RPC_URL: "primary_rpc_url",
    ENV_SECONDARY_RPC_URL: "secondary_rpc_url",
    ENV_API_BASE_URL: "api_base_url",
}


class ConfigError(Exception):
    """Raised when a configuration file is malformed or unreadable."""


def load_config(
    path: Path | str | None = None,
    environ: dict[str, str] | None = None,
) -> PnodesConfig:
    """Load configuration from a YAML file, then apply environment overrides.

    Args:
        path: Explicit path to a YAML config file.  If ``None``, the
            default location (``~/.pnodes/config.yaml``) is tried.  If the
            default file doesn't exist, defaults are used silently.
        environ: Environment mapping to read overrides from (default:
            ``os.environ``).

    Returns:
        A populated ``PnodesConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit *path* was given but doesn't exist.
        ConfigError: If the file contains invalid YAML, has an unexpected
            top-level structure, or holds invalid values.
    """
    resolved = _resolve_path(path)

    if resolved is None:
        logger.debug("No config file found; using defaults")
        cfg = PnodesConfig()
    else:
        cfg = _read_file(resolved)

    cfg = apply_env_overrides(cfg, os.environ if environ is None else environ)
    _validate(cfg)
    return cfg


def apply_env_overrides(cfg: PnodesConfig, environ: dict[str, str]) -> PnodesConfig:
    """Return a copy of *cfg* with endpoint URLs taken from *environ*.

    Empty variables are ignored.
    """
    overrides: dict[str, object] = {}
    for env_key, field_name in _ENV_TO_FIELD.items():
        value = environ.get(env_key, "").strip()
        if value:
            logger.debug("Using %s from $%s", field_name, env_key)
            overrides[field_name] = value
    return replace(cfg, **overrides) if overrides else cfg


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _read_file(resolved: Path) -> PnodesConfig:
    logger.debug("Loading config from %s", resolved)
    text = resolved.read_text(encoding="utf-8")

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {resolved}: {exc}") from exc

    if raw is None:
        # Empty file: all defaults.
        return PnodesConfig()

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping at the top level in {resolved}, "
            f"got {type(raw).__name__}"
        )

    return _build_config(raw, source=resolved)


def _resolve_path(path: Path | str | None) -> Path | None:
    """Return a concrete ``Path`` to read, or ``None`` if nothing to read.

    Raises:
        FileNotFoundError: If the caller supplied an explicit path that
            doesn't exist on disk.
    """
    if path is not None:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    default = DEFAULT_CONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None


def _build_config(raw: dict, source: Path) -> PnodesConfig:
    """Map a raw YAML dict to a ``PnodesConfig``, ignoring unknown keys."""
    known = {f.name for f in fields(PnodesConfig)}
    kwargs: dict[str, object] = {k: v for k, v in raw.items() if k in known}

    if "api_paths" in kwargs:
        paths = kwargs["api_paths"]
        if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
            raise ConfigError(f"'api_paths' in {source} must be a list of strings")
        kwargs["api_paths"] = tuple(paths)

    unknown = set(raw) - known
    if unknown:
        logger.warning(
            "Ignoring unknown config keys in %s: %s",
            source,
            ", ".join(sorted(str(k) for k in unknown)),
        )

    return PnodesConfig(**kwargs)


def _validate(cfg: PnodesConfig) -> None:
    for name in _TIMEOUT_FIELDS:
        value = getattr(cfg, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"{name} must be a positive number, got {value!r}")

    count = cfg.simulation_count
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ConfigError(
            f"simulation_count must be a non-negative integer, got {count!r}"
        )
