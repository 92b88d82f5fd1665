"""
Raw probe evidence.

Each record is produced by one prober and consumed by the evidence
aggregator. Records are immutable; ``HostEvidence`` bundles everything
collected for a single host during one scan pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .enums import ScanType, ServiceType


DEFAULT_INSTANCE = "MSSQLSERVER"


@dataclass(frozen=True)
class DnsResolution:
    """Forward lookup result for a host."""

    hostname: str
    fqdn: str
    addresses: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"hostname": self.hostname, "fqdn": self.fqdn, "addresses": list(self.addresses)}


@dataclass(frozen=True)
class PortResult:
    """Outcome of one TCP connect attempt."""

    computer_name: str
    port: int
    is_open: bool

    def to_dict(self) -> dict:
        return {"port": self.port, "is_open": self.is_open}


@dataclass(frozen=True)
class BrowserReply:
    """One instance record parsed from an SSRP response."""

    machine_name: str
    computer_name: str
    instance_name: str
    version: str
    is_clustered: bool
    tcp_port: Optional[int] = None

    @property
    def sql_instance(self) -> str:
        if self.instance_name.upper() == DEFAULT_INSTANCE:
            return self.computer_name
        return f"{self.computer_name}\\{self.instance_name}"

    def to_dict(self) -> dict:
        return {
            "machine_name": self.machine_name,
            "computer_name": self.computer_name,
            "sql_instance": self.sql_instance,
            "instance_name": self.instance_name,
            "version": self.version,
            "is_clustered": self.is_clustered,
            "tcp_port": self.tcp_port,
        }


@dataclass(frozen=True)
class SpnRecord:
    """
    A ``MSSQLsvc/host[:suffix]`` service principal name.

    The suffix is either a TCP port or a named instance, never both.
    """

    spn: str
    host: str
    port: Optional[int] = None
    instance_name: Optional[str] = None
    account: Optional[str] = None

    @classmethod
    def parse(cls, spn: str, account: str | None = None) -> Optional["SpnRecord"]:
        """
        Parse an SPN string.

        Returns:
            SpnRecord, or None if the value is not a MSSQLsvc SPN.
        """
        service, _, target = spn.strip().partition("/")
        if service.lower() != "mssqlsvc" or not target:
            return None

        host, _, suffix = target.partition(":")
        host = host.strip()
        suffix = suffix.strip()
        if not host:
            return None

        if not suffix:
            return cls(spn=spn, host=host, account=account)
        if suffix.isdigit():
            return cls(spn=spn, host=host, port=int(suffix), account=account)
        return cls(spn=spn, host=host, instance_name=suffix, account=account)

    def to_dict(self) -> dict:
        return {"spn": self.spn, "host": self.host, "port": self.port,
                "instance_name": self.instance_name, "account": self.account}


@dataclass(frozen=True)
class ServiceRecord:
    """A SQL Server related Windows service installed on a host."""

    computer_name: str
    service_name: str
    service_type: ServiceType
    instance_name: Optional[str] = None
    state: str = "Unknown"
    display_name: str = ""
    start_mode: str = ""

    def to_dict(self) -> dict:
        return {
            "service_name": self.service_name,
            "display_name": self.display_name,
            "service_type": self.service_type.value,
            "instance_name": self.instance_name,
            "state": self.state,
            "start_mode": self.start_mode,
        }


@dataclass
class HostEvidence:
    """Everything the probes found for one host in one pass."""

    computer_name: str
    scan_types: ScanType = ScanType.DEFAULT
    dns_resolution: Optional[DnsResolution] = None
    ping: bool = False
    spns: list[SpnRecord] = field(default_factory=list)
    ports: list[PortResult] = field(default_factory=list)
    browser_replies: list[BrowserReply] = field(default_factory=list)
    services: list[ServiceRecord] = field(default_factory=list)

    @property
    def open_ports(self) -> set[int]:
        return {result.port for result in self.ports if result.is_open}

    @property
    def spn_ports(self) -> set[int]:
        return {spn.port for spn in self.spns if spn.port is not None}

    @property
    def is_alive(self) -> bool:
        """Host proved it exists without any SQL Server evidence."""
        return self.dns_resolution is not None or self.ping
