"""CLI entry point for the pnodes tool."""

import asyncio
import logging
import sys

import click

from pnodes.config import ConfigError, PnodesConfig, load_config
from pnodes.models import NetworkResponse, empty_response
from pnodes.output import FORMATS, render
from pnodes.resolver import resolve_network_status
from pnodes.strategies import Strategy, build_chain, registered_strategies

logger = logging.getLogger(__name__)

STRATEGY_CHOICES = ("all", *registered_strategies())


@click.command()
@click.option(
    "--format",
    "-f",
    "output_format",
    default="table",
    type=click.Choice(FORMATS, case_sensitive=False),
    show_default=True,
    help="Output format.",
)
@click.option(
    "--strategy",
    "-s",
    "strategy_name",
    default="all",
    type=click.Choice(STRATEGY_CHOICES, case_sensitive=False),
    show_default=True,
    help="Query only this live source instead of the whole chain.",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to YAML config file (default: ~/.pnodes/config.yaml).",
)
@click.option(
    "--simulate",
    is_flag=True,
    default=False,
    help="Skip the live endpoints and return simulated nodes.",
)
@click.option(
    "--top",
    default=0,
    type=click.IntRange(min=0),
    show_default=True,
    help="Also list the N best-performing nodes (table format).",
)
@click.option(
    "--stats",
    is_flag=True,
    default=False,
    help="Include aggregate statistics in JSON output.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
def main(
    output_format: str,
    strategy_name: str,
    config_path: str | None,
    simulate: bool,
    top: int,
    stats: bool,
    verbose: bool,
) -> None:
    """Show the status of the storage network's nodes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        cfg = load_config(config_path)
    except (ConfigError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if simulate:
        cfg.force_simulation = True

    logger.debug("Config loaded: %s", cfg)

    strategies = _select_strategies(cfg, strategy_name.lower())
    response = _resolve(cfg, strategies)
    render(response, output_format.lower(), top=top, stats=stats)


def _select_strategies(cfg: PnodesConfig, name: str) -> list[Strategy] | None:
    """Return the configured chain narrowed to *name*, or ``None`` for all."""
    if name == "all":
        return None
    chain = [s for s in build_chain(cfg) if s.name == name]
    if not chain:
        logger.warning("Strategy %s is not configured; nothing live to query", name)
    return chain


def _resolve(
    cfg: PnodesConfig, strategies: list[Strategy] | None = None
) -> NetworkResponse:
    """Run one resolution, substituting an empty response on failure.

    The resolver itself never raises; this guards the event-loop plumbing
    around it.
    """
    try:
        if strategies is None:
            return asyncio.run(resolve_network_status(cfg))
        return asyncio.run(resolve_network_status(cfg, strategies=strategies))
    except Exception:
        logger.exception("Network status resolution failed")
        return empty_response()
