"""Command-line interface for the IPAM core."""

from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import IpamConfig, load_config
from .core.checker import check_snapshot
from .core.planner import NodeChangePlanner
from .core.snapshot import AddressSpaceSnapshot, load_snapshot
from .hierarchy.allocation import (
    calculate_utilization,
    find_available_subnets,
    validate_subnet_allocation,
)
from .models.prefix import Prefix
from .observability import configure_from_config
from .utils.exceptions import IpamError

app = typer.Typer(
    name="ipam-core",
    help="IPAM core - prefix hierarchy and tag inheritance tooling",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)

DEFAULT_SUBNET_LIMIT = 256


def _setup(config_file: Path | None, log_level: str | None) -> IpamConfig:
    """Load configuration and configure logging for a command."""
    config = load_config(config_file)
    if log_level:
        config.logging.level = log_level
    configure_from_config(config.logging)
    return config


def _load(snapshot_file: Path, config: IpamConfig) -> AddressSpaceSnapshot:
    return load_snapshot(snapshot_file, allow_equal_prefix=config.policy.allow_equal_prefix)


def _fail(error: Exception) -> typer.Exit:
    console.print(f"\n[red]ERROR:[/red] {escape(str(error))}")
    return typer.Exit(code=1)


def _parse_tags(values: list[str] | None) -> dict[str, str]:
    """Turn repeated ``--tag Name=Value`` options into a tag map."""
    tags: dict[str, str] = {}
    for item in values or []:
        name, separator, value = item.partition("=")
        if not separator or not name.strip():
            raise typer.BadParameter(f"Expected Name=Value, got {item!r}", param_hint="--tag")
        tags[name.strip()] = value.strip()
    return tags


@app.command()
def check(
    snapshot_file: Path = typer.Argument(..., help="Address-space snapshot (YAML)", exists=True),
    strict: bool = typer.Option(False, "--strict", help="Fail on warnings"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """
    Check a snapshot against every schema and node rule.

    Checks:
    - Tag definition rules and implication acyclicity
    - Known values, implication conflicts and inheritance conflicts
    - The extra-tag rule for nodes sharing their parent's network
    - Host bits, stale stored parents and undefined tags (warnings)

    Examples:
        ipam-core check samples/address_space.yaml
        ipam-core check samples/address_space.yaml --strict
    """
    console.print(f"\n[bold blue]Checking snapshot:[/bold blue] {snapshot_file}\n")

    try:
        config = _setup(config_file, log_level)
        snapshot = _load(snapshot_file, config)
    except (IpamError, ValueError, FileNotFoundError) as e:
        raise _fail(e) from e

    report = check_snapshot(snapshot)

    table = Table(title=f"Address space {snapshot.address_space_id}")
    table.add_column("Item", style="cyan")
    table.add_column("Count", justify="right", style="green")
    for key in ("nodes", "tags", "errors", "warnings"):
        table.add_row(key.capitalize(), str(report.summary[key]))
    console.print(table)

    if report.warnings:
        console.print(f"\n[yellow]Warnings ({len(report.warnings)}):[/yellow]")
        for issue in report.warnings:
            console.print(f"  - {escape(issue.subject)}: {escape(issue.message)}")

    if report.errors:
        console.print(f"\n[red]Errors ({len(report.errors)}):[/red]")
        for issue in report.errors:
            console.print(f"  - {escape(issue.subject)}: {escape(issue.message)}")
        console.print(f"\n[bold red]Check failed with {len(report.errors)} errors.[/bold red]")
        raise typer.Exit(code=1)

    if strict and report.warnings:
        console.print("\n[red]ERROR: Check failed (strict mode)[/red]")
        raise typer.Exit(code=1)

    console.print("\n[green]PASS: Snapshot is consistent[/green]")


@app.command()
def place(
    snapshot_file: Path = typer.Argument(..., help="Address-space snapshot (YAML)", exists=True),
    cidr: str = typer.Argument(..., help="Prefix to place, e.g. 10.1.2.0/24"),
    tag: list[str] | None = typer.Option(None, "--tag", "-t", help="Tag as Name=Value"),
    node_id: str = typer.Option("new", "--id", help="Id for the new node"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """
    Show where a new prefix would land and what its creation would change.

    Nothing is written; the plan is only printed.

    Examples:
        ipam-core place samples/address_space.yaml 10.1.2.0/24
        ipam-core place samples/address_space.yaml 10.1.0.0/16 -t Env=Prod -t Tier=Gold
    """
    tags = _parse_tags(tag)

    try:
        config = _setup(config_file, log_level)
        snapshot = _load(snapshot_file, config)
        planner = NodeChangePlanner(config.policy)
        plan = planner.plan_create(
            snapshot.address_space_id,
            node_id,
            cidr,
            tags,
            snapshot.nodes,
            snapshot.definitions,
        )
    except (IpamError, ValueError, FileNotFoundError) as e:
        raise _fail(e) from e

    node = plan.node
    by_id = snapshot.nodes_by_id
    parent = by_id[node.parent_id] if node.parent_id else None

    table = Table(title=f"Placement of {node.prefix}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Parent", str(parent) if parent else "(top level)")
    table.add_row(
        "Children",
        ", ".join(str(by_id[child_id]) for child_id in sorted(node.children_ids)) or "(none)",
    )
    table.add_row(
        "Tags",
        ", ".join(f"{name}={value}" for name, value in sorted(node.direct_tags.items()))
        or "(none)",
    )
    console.print(table)
    console.print(f"\n[green]{escape(plan.get_summary())}[/green]")


@app.command()
def subnets(
    cidr: str = typer.Argument(..., help="Prefix to split"),
    length: int | None = typer.Argument(None, help="Subnet length (default: one bit longer)"),
    limit: int = typer.Option(DEFAULT_SUBNET_LIMIT, "--limit", help="Maximum subnets to print"),
) -> None:
    """
    List the subnets partitioning a prefix.

    Examples:
        ipam-core subnets 10.0.0.0/8 10
        ipam-core subnets 2001:db8::/32 48 --limit 4
    """
    try:
        prefix = Prefix.parse(cidr)
        new_length = prefix.length + 1 if length is None else length
        iterator = prefix.iter_subnets(new_length)
    except ValueError as e:
        raise _fail(e) from e

    total = 1 << (new_length - prefix.length)
    for index, subnet in enumerate(iterator):
        if index >= limit:
            console.print(f"[dim]... {total - limit} more[/dim]")
            break
        console.print(str(subnet))

    console.print(f"\n[green]{total} subnets of /{new_length} in {prefix}[/green]")


@app.command()
def available(
    snapshot_file: Path = typer.Argument(..., help="Address-space snapshot (YAML)", exists=True),
    parent: str = typer.Argument(..., help="Prefix to allocate from"),
    length: int = typer.Argument(..., help="Wanted subnet length"),
    count: int | None = typer.Option(None, "--count", "-n", help="Number of subnets to find"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Find free subnets of a given length inside a prefix.

    Examples:
        ipam-core available samples/address_space.yaml 10.0.0.0/8 24 --count 4
    """
    try:
        config = _setup(config_file, None)
        snapshot = _load(snapshot_file, config)
        parent_prefix = Prefix.parse(parent)
        wanted = config.policy.default_available_count if count is None else count
        found = find_available_subnets(parent_prefix, length, snapshot.prefixes, wanted)
    except (IpamError, ValueError, FileNotFoundError) as e:
        raise _fail(e) from e

    if not found:
        console.print(f"[yellow]No free /{length} left in {parent_prefix}[/yellow]")
        raise typer.Exit(code=1)

    # The parent itself always overlaps its subnets
    inside = [prefix for prefix in snapshot.prefixes if prefix.is_subnet_of(parent_prefix)]
    for prefix in found:
        result = validate_subnet_allocation(prefix, inside)
        console.print(f"{prefix}  [dim]{escape(result.message)}[/dim]")


@app.command()
def utilization(
    snapshot_file: Path = typer.Argument(..., help="Address-space snapshot (YAML)", exists=True),
    cidr: str = typer.Argument(..., help="Network to measure"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
) -> None:
    """
    Show how much of a network is allocated.

    Examples:
        ipam-core utilization samples/address_space.yaml 10.0.0.0/8
    """
    try:
        config = _setup(config_file, None)
        snapshot = _load(snapshot_file, config)
        stats = calculate_utilization(Prefix.parse(cidr), snapshot.prefixes)
    except (IpamError, ValueError, FileNotFoundError) as e:
        raise _fail(e) from e

    table = Table(title=f"Utilization of {stats.network}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Total addresses", str(stats.total_addresses))
    table.add_row("Allocated", str(stats.allocated_addresses))
    table.add_row("Available", str(stats.available_addresses))
    table.add_row("Utilization", f"{stats.utilization_percentage:.2f}%")
    table.add_row("Subnets", str(stats.subnet_count))
    table.add_row(
        "Largest free block",
        str(stats.largest_available_block) if stats.largest_available_block else "(none)",
    )
    table.add_row("Fragmentation", f"{stats.fragmentation_index:.2f}")
    console.print(table)


@app.command()
def version() -> None:
    """Show version information and features."""
    console.print(
        Panel.fit(
            "[bold]IPAM Core[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Core Features:[/bold]\n"
            "- IPv4 and IPv6 prefix algebra\n"
            "- Longest-prefix-match hierarchy placement\n"
            "- Tag implications with cycle detection\n"
            "- Tag inheritance validation\n"
            "- Subnet allocation and utilization\n"
            "- Snapshot checking",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
