"""
AutoDBScan CLI.

Commands:
    find          Discover SQL Server instances
    expand-range  Print the addresses an IP range specification covers
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from autodbscan.application.discovery_service import DiscoveryService
from autodbscan.domain.config import Credential, DiscoveryRequest
from autodbscan.domain.errors import DiscoveryError
from autodbscan.domain.models import Confidence, DiscoveryType, ScanType
from autodbscan.domain.targets import expand_ip_ranges
from autodbscan.infrastructure.config_loader import ConfigLoader
from autodbscan.infrastructure.logging_config import setup_logging
from autodbscan.interface.formatters import CandidateTableFormatter, write_csv, write_json_lines

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

app = typer.Typer(
    name="autodbscan",
    help="🔍 SQL Server instance discovery - DNS, SPN, ports, SQL Browser, services and logins",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

OUTPUT_FORMATS = ("table", "json", "csv")


def _credential(username: Optional[str], password: Optional[str], label: str) -> Optional[Credential]:
    if not username:
        return None
    if password is None:
        password = typer.prompt(f"{label} password for {username}", hide_input=True)
    return Credential(username=username, password=password)


def _fail(message: str) -> None:
    err_console.print(f"[red]❌ Error:[/red] {escape(message)}", soft_wrap=True)
    raise typer.Exit(2)


@app.command("find")
def find_command(
    computer: Optional[List[str]] = typer.Option(
        None, "--computer", "-c", help="Host to scan (repeatable)"
    ),
    computer_file: Optional[Path] = typer.Option(
        None, "--computer-file", help="File with hosts (JSON array or one per line)"
    ),
    discovery_type: Optional[List[str]] = typer.Option(
        None, "--discovery-type", "-d",
        help="DomainSPN, DataSourceEnumeration, IPRange, DomainServer or All (repeatable)"
    ),
    scan_type: Optional[List[str]] = typer.Option(
        None, "--scan-type", "-s",
        help="Browser, SQLService, SPN, TCPPort, Ping, SqlConnect, DNSResolve, Default or All (repeatable)"
    ),
    ip_range: Optional[List[str]] = typer.Option(
        None, "--ip-range", help="a.b.c.d, a.b.c.d-e.f.g.h, a.b.c.d/nn or a.b.c.d/m.m.m.m (repeatable)"
    ),
    domain_controller: Optional[str] = typer.Option(
        None, "--domain-controller", help="Directory server for SPN and server searches"
    ),
    username: Optional[str] = typer.Option(
        None, "--username", help="Windows user for directory and WinRM (DOMAIN\\user)"
    ),
    password: Optional[str] = typer.Option(
        None, "--password", help="Windows password (prompted when omitted)"
    ),
    credential_file: Optional[Path] = typer.Option(
        None, "--credential-file", help="JSON file with the Windows username and password"
    ),
    sql_username: Optional[str] = typer.Option(
        None, "--sql-username", help="SQL login for connect validation (integrated when omitted)"
    ),
    sql_password: Optional[str] = typer.Option(
        None, "--sql-password", help="SQL password (prompted when omitted)"
    ),
    tcp_port: Optional[List[int]] = typer.Option(
        None, "--tcp-port", "-p", help="TCP port to probe (repeatable, default 1433)"
    ),
    min_confidence: str = typer.Option(
        "Low", "--min-confidence", help="None, Low, Medium or High"
    ),
    udp_timeout: Optional[float] = typer.Option(
        None, "--udp-timeout", help="Seconds to wait for a SQL Browser reply (default 2)"
    ),
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", help="Discovery settings JSON file"
    ),
    output_format: str = typer.Option(
        "table", "--format", "-f", help="Output format: table, json, csv"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show per-probe detail"
    ),
    log_file: Optional[str] = typer.Option(
        None, "--log-file", help="Write a full DEBUG log to this file"
    ),
):
    """
    Discover SQL Server instances.

    Scan explicit hosts with --computer/--computer-file, or enumerate hosts
    with one or more --discovery-type sources. Each host is probed once and
    every candidate is reported with a confidence level.
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING, log_file)

    if output_format not in OUTPUT_FORMATS:
        _fail(f"Unknown format '{output_format}'. Use one of: {', '.join(OUTPUT_FORMATS)}")

    try:
        loader = ConfigLoader()
        settings = loader.load_settings(settings_file)
        computers = list(computer or [])
        if computer_file:
            computers.extend(loader.load_computer_list(computer_file))
        credential = _credential(username, password, "Windows")
        if credential is None and credential_file:
            credential = loader.load_credential_file(credential_file)

        request = DiscoveryRequest(
            computer_names=computers,
            discovery_type=DiscoveryType.combine(discovery_type) if discovery_type else None,
            scan_type=ScanType.combine(scan_type) if scan_type else ScanType.DEFAULT,
            ip_ranges=list(ip_range or []),
            domain_controller=domain_controller,
            credential=credential,
            sql_credential=_credential(sql_username, sql_password, "SQL"),
            tcp_ports=list(tcp_port) if tcp_port else None,
            min_confidence=Confidence.parse(min_confidence),
            udp_timeout=udp_timeout,
        )

        candidates = DiscoveryService(settings).find_instances(request)
        if output_format == "json":
            count = write_json_lines(candidates)
        elif output_format == "csv":
            count = write_csv(candidates)
        else:
            count = CandidateTableFormatter().display(candidates)
    except (DiscoveryError, ValueError) as e:
        logger.error("Discovery aborted: %s", e)
        _fail(str(e))

    logger.info("Reported %d candidate(s)", count)


@app.command("expand-range")
def expand_range_command(
    ranges: List[str] = typer.Argument(..., help="Range specifications to expand"),
):
    """Print every address covered by the given IP range specifications."""
    try:
        addresses = expand_ip_ranges(ranges)
    except DiscoveryError as e:
        _fail(str(e))

    for address in addresses:
        typer.echo(address)


def main() -> int:
    """
    Main entry point for AutoDBScan CLI.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    try:
        app()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
