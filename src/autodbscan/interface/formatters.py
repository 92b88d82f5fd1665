"""
CLI result formatters.

Candidates are written as they arrive: JSON lines, CSV rows, or a rich
table rendered once the stream is exhausted.
"""

import csv
import json
import sys
from typing import Iterable, Iterator, Optional, TextIO

from rich.console import Console
from rich.table import Table

from autodbscan.domain.models import Availability, Confidence, InstanceCandidate

CSV_FIELDS = [
    "ComputerName",
    "MachineName",
    "InstanceName",
    "SqlInstance",
    "Port",
    "Confidence",
    "Availability",
    "TcpConnected",
    "SqlConnected",
    "Ping",
    "ScanTypes",
    "SPNs",
    "Timestamp",
]

_CONFIDENCE_STYLE = {
    Confidence.HIGH: "[green]High[/green]",
    Confidence.MEDIUM: "[yellow]Medium[/yellow]",
    Confidence.LOW: "[red]Low[/red]",
    Confidence.NONE: "[dim]None[/dim]",
}

_AVAILABILITY_STYLE = {
    Availability.AVAILABLE: "[green]✅ Available[/green]",
    Availability.UNAVAILABLE: "[red]❌ Unavailable[/red]",
    Availability.UNKNOWN: "[dim]Unknown[/dim]",
}


def _yes_no(value: bool) -> str:
    return "[green]Yes[/green]" if value else "[dim]No[/dim]"


def write_json_lines(candidates: Iterable[InstanceCandidate], stream: Optional[TextIO] = None) -> int:
    """One JSON object per line; returns the count written."""
    stream = stream or sys.stdout
    count = 0
    for candidate in candidates:
        stream.write(json.dumps(candidate.to_dict()) + "\n")
        stream.flush()
        count += 1
    return count


def write_csv(candidates: Iterable[InstanceCandidate], stream: Optional[TextIO] = None) -> int:
    """CSV with a header row; list columns are joined with ``|``."""
    stream = stream or sys.stdout
    writer = csv.DictWriter(stream, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()
    count = 0
    for candidate in candidates:
        row = candidate.to_dict()
        row["ScanTypes"] = "|".join(row["ScanTypes"])
        row["SPNs"] = "|".join(row["SPNs"])
        writer.writerow(row)
        stream.flush()
        count += 1
    return count


class CandidateTableFormatter:
    """Rich table of discovered instances."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def _rows(self, table: Table, candidates: Iterable[InstanceCandidate]) -> Iterator[InstanceCandidate]:
        for candidate in candidates:
            table.add_row(
                candidate.computer_name,
                candidate.instance_name or "",
                str(candidate.port) if candidate.port else "",
                _CONFIDENCE_STYLE[candidate.confidence],
                _AVAILABILITY_STYLE[candidate.availability],
                _yes_no(candidate.tcp_connected),
                _yes_no(candidate.sql_connected),
                candidate.browse_reply.version if candidate.browse_reply else "",
            )
            yield candidate

    def display(self, candidates: Iterable[InstanceCandidate]) -> int:
        """Render the table and a summary line; returns the count shown."""
        table = Table(title="🔍 SQL Server Instances")
        table.add_column("Computer", style="cyan", no_wrap=True)
        table.add_column("Instance", style="blue")
        table.add_column("Port", style="magenta")
        table.add_column("Confidence")
        table.add_column("Availability")
        table.add_column("TCP")
        table.add_column("SQL")
        table.add_column("Version", style="white")

        count = sum(1 for _ in self._rows(table, candidates))
        if count:
            self.console.print(table)
        self.console.print(f"\n[blue]📊 Summary: {count} instance candidate(s) found[/blue]")
        return count
