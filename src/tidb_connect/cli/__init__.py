"""CLI module for resolving descriptors and checking database startup.

Usage:
    tidb-connect dsn
    TIDB_TLS=true DB_HOST=gateway01.example.com tidb-connect dsn
    tidb-connect --env-prefix APP_ connect
    tidb-connect --verbose connect

Commands:
    dsn      - Resolve, bootstrap TLS, and print the normalized descriptor
    connect  - Run full startup: connect and reconcile the schema
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tidb_connect.config.loader import load_raw_config
from tidb_connect.errors import StartupError
from tidb_connect.factory import resolve_descriptor, start_database
from tidb_connect.tls.registry import TrustProfileRegistry

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ============================================================================
# Command implementations
# ============================================================================


def cmd_dsn(args: argparse.Namespace) -> int:
    """Print the normalized descriptor without connecting.

    Args:
        args: Parsed arguments with env_prefix.

    Returns:
        0 on success, 1 on failure.
    """
    registry = TrustProfileRegistry()
    raw = load_raw_config(env_prefix=args.env_prefix)

    try:
        descriptor = resolve_descriptor(raw, registry)
    except StartupError as e:
        console.print(f"[bold red]x[/bold red] {type(e).__name__}: {e}")
        return 1

    console.print(descriptor.masked())

    table = Table(title="Descriptor", show_header=True, header_style="bold")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("net", descriptor.config.net)
    table.add_row("addr", descriptor.config.addr)
    table.add_row("database", descriptor.config.db_name)
    for key in sorted(descriptor.config.params):
        table.add_row(key, descriptor.config.params[key])
    console.print(table)

    if descriptor.tls_profile:
        profile = registry.get(descriptor.tls_profile)
        console.print(
            f"TLS profile [bold cyan]{descriptor.tls_profile}[/bold cyan]: "
            f"{profile.describe()}"
        )
    else:
        console.print("[dim]TLS profile: none[/dim]")
    return 0


async def _async_connect(args: argparse.Namespace) -> int:
    """Async implementation for connect command.

    Args:
        args: Parsed arguments with env_prefix.

    Returns:
        0 on success, 1 on failure.
    """
    console.print("Connecting to database...", style="dim")

    result = await start_database(env_prefix=args.env_prefix)

    if not result.success:
        console.print()
        console.print(f"[bold red]x[/bold red] {result.error_type}: {result.error}")
        if result.schema_report:
            console.print("\n[bold]Schema reconciliation report:[/bold]")
            console.print(result.schema_report.format_report())
        return 1

    try:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Connected: [bold cyan]{result.descriptor}[/bold cyan]"
        )
        if result.tls_profile:
            console.print(f"  TLS profile: [green]{result.tls_profile}[/green]")
        if result.schema_report:
            console.print(f"  {result.schema_report.format_report()}")
    finally:
        await result.database.close()
    return 0


def cmd_connect(args: argparse.Namespace) -> int:
    """Run full startup against the configured database.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_connect(args))


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="tidb-connect",
        description="Resolve TiDB connection descriptors and check startup",
    )
    parser.add_argument(
        "--env-prefix",
        default="",
        help="Prefix for environment variable lookup (e.g., --env-prefix APP_ reads APP_DB_HOST)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log each startup step",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_dsn = subparsers.add_parser(
        "dsn",
        help="Print the normalized connection descriptor",
    )
    p_dsn.set_defaults(func=cmd_dsn)

    p_connect = subparsers.add_parser(
        "connect",
        help="Connect to the database and reconcile the schema",
    )
    p_connect.set_defaults(func=cmd_connect)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
