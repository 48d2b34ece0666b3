"""Output renderer: rich table formatter, JSON formatter, format dispatch."""

import json
import logging
import sys
from io import StringIO

from rich.console import Console
from rich.table import Table

from pnodes.aggregator import aggregate, aggregate_to_dict, find_top_node, get_top_nodes
from pnodes.models import NetworkResponse, Node, response_to_dict

logger = logging.getLogger(__name__)

FORMATS = ("table", "json")

# (header, attribute) pairs for the node table.
_NODE_COLUMNS = [
    ("Pubkey", "pubkey"),
    ("IP", "ip"),
    ("Status", "status"),
    ("Storage (TB)", "storage"),
    ("Uptime (%)", "uptime"),
    ("Location", "location"),
    ("Lat", "lat"),
    ("Lng", "lng"),
]

_PUBKEY_WIDTH = 12


def render(
    response: NetworkResponse,
    fmt: str,
    *,
    file: object | None = None,
    width: int | None = None,
    top: int = 0,
    stats: bool = False,
) -> None:
    """Dispatch output to the appropriate formatter.

    Args:
        response: Resolved network status.
        fmt: Output format — ``"table"`` or ``"json"``.
        file: Writable file object for output (default: ``sys.stdout``).
        width: Explicit console width (default: auto-detect).
        top: If positive, also print a top-N performers table (table
            format only).
        stats: If true, add a ``stats`` object to the JSON payload (JSON
            format only; the table summary always carries them).

    Raises:
        ValueError: If *fmt* is not ``"table"`` or ``"json"``.
    """
    if fmt == "table":
        render_table(response, file=file, width=width, top=top)
    elif fmt == "json":
        render_json(response, file=file, stats=stats)
    else:
        raise ValueError(f"Unknown output format: {fmt!r}")


# ---------------------------------------------------------------------------
# Table (rich) formatter
# ---------------------------------------------------------------------------


def render_table(
    response: NetworkResponse,
    *,
    file: object | None = None,
    width: int | None = None,
    top: int = 0,
) -> None:
    """Render *response* as ``rich`` tables to *file*."""
    out = file or sys.stdout
    console = Console(file=out, highlight=False, width=width)

    title = f"{response.status} — {response.node_count} nodes"
    if response.source:
        title = f"{title} (via {response.source})"
    console.print(_node_table(title, response.nodes))
    _print_summary(console, response)

    if top > 0:
        leaders = get_top_nodes(response.nodes, top)
        console.print(_node_table(f"Top {len(leaders)} nodes", leaders))


def _node_table(title: str, nodes: list[Node]) -> Table:
    table = Table(title=title)
    for header, _ in _NODE_COLUMNS:
        table.add_column(header)
    for node in nodes:
        table.add_row(*[_fmt(attr, getattr(node, attr)) for _, attr in _NODE_COLUMNS])
    return table


def _print_summary(console: Console, response: NetworkResponse) -> None:
    """Print the summary and the top node beneath the node table."""
    stats = aggregate(response.nodes)
    top_location = (
        stats.location_distribution[0][0] if stats.location_distribution else "—"
    )
    console.print(
        f"  {stats.total} nodes, {stats.active} active, "
        f"{stats.total_storage:.1f} TB, avg uptime {stats.average_uptime:.2f}%, "
        f"top location: {top_location}, "
        f"updated {response.last_updated.isoformat(timespec='seconds')}"
    )
    best = find_top_node(response.nodes)
    if best is not None:
        console.print(
            f"  top node: {_fmt('pubkey', best.pubkey)} ({best.ip}, "
            f"{best.storage:.2f} TB, {best.uptime:.2f}%, {best.location})"
        )


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------


def render_json(
    response: NetworkResponse,
    *,
    file: object | None = None,
    stats: bool = False,
) -> None:
    """Render *response* as its serialized JSON form to *file*.

    With *stats*, the payload also carries the aggregate statistics under
    ``stats``; readers of the plain response ignore the extra key.
    """
    out = file or sys.stdout
    payload = response_to_dict(response)
    if stats:
        payload["stats"] = aggregate_to_dict(response.nodes)
    json.dump(payload, out, indent=2, ensure_ascii=False)
    out.write("\n")  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _fmt(attr: str, value: object) -> str:
    """Format a field value for table display."""
    if value is None:
        return "—"
    if attr == "pubkey":
        text = str(value)
        return text if len(text) <= _PUBKEY_WIDTH else f"{text[:_PUBKEY_WIDTH]}…"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def render_to_string(response: NetworkResponse, fmt: str, *, width: int = 200) -> str:
    """Render to a string instead of stdout — useful for testing."""
    buf = StringIO()
    render(response, fmt, file=buf, width=width)
    return buf.getvalue()
