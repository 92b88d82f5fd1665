"""
InstanceCandidate domain model.

A candidate is created by the evidence aggregator, may be promoted by SQL
connect validation and is then emitted to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import Availability, Confidence, ScanType
from .evidence import (
    DEFAULT_INSTANCE,
    BrowserReply,
    DnsResolution,
    PortResult,
    ServiceRecord,
    SpnRecord,
)


def _instance_identity(computer: str, instance_name: str | None, port: int | None) -> str:
    if instance_name:
        if instance_name.upper() == DEFAULT_INSTANCE:
            return computer
        return f"{computer}\\{instance_name}"
    if port:
        return f"{computer}:{port}"
    return computer


@dataclass
class InstanceCandidate:
    """Provisional SQL Server instance found on a host."""

    computer_name: str
    machine_name: str
    instance_name: Optional[str] = None
    port: Optional[int] = None
    dns_resolution: Optional[DnsResolution] = None
    ping: bool = False
    scan_types: ScanType = ScanType.DEFAULT
    services: list[ServiceRecord] = field(default_factory=list)
    system_services: list[ServiceRecord] = field(default_factory=list)
    spns: list[SpnRecord] = field(default_factory=list)
    browse_reply: Optional[BrowserReply] = None
    ports_scanned: list[PortResult] = field(default_factory=list)
    confidence: Confidence = Confidence.NONE
    availability: Availability = Availability.UNKNOWN
    tcp_connected: bool = False
    sql_connected: bool = False
    domain_instance_name: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> tuple[str, str]:
        """(host, instance-or-port) identity used for idempotence checks."""
        if self.instance_name:
            return (self.computer_name.lower(), self.instance_name.upper())
        if self.port:
            return (self.computer_name.lower(), str(self.port))
        return (self.computer_name.lower(), "")

    @property
    def sql_instance(self) -> str:
        return _instance_identity(self.computer_name, self.instance_name, self.port)

    @property
    def full_name(self) -> str:
        return _instance_identity(self.machine_name, self.instance_name, self.port)

    @property
    def connect_string(self) -> str:
        """ODBC ``SERVER=`` value; a known port wins over the instance name."""
        if self.port:
            return f"{self.computer_name},{self.port}"
        return self.sql_instance

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "MachineName": self.machine_name,
            "ComputerName": self.computer_name,
            "InstanceName": self.instance_name,
            "FullName": self.full_name,
            "SqlInstance": self.sql_instance,
            "Port": self.port,
            "TcpConnected": self.tcp_connected,
            "SqlConnected": self.sql_connected,
            "DnsResolution": self.dns_resolution.to_dict() if self.dns_resolution else None,
            "Ping": self.ping,
            "BrowseReply": self.browse_reply.to_dict() if self.browse_reply else None,
            "Services": [service.to_dict() for service in self.services],
            "SystemServices": [service.to_dict() for service in self.system_services],
            "SPNs": [spn.spn for spn in self.spns],
            "PortsScanned": [result.to_dict() for result in self.ports_scanned],
            "Availability": self.availability.value,
            "Confidence": self.confidence.name.title(),
            "ScanTypes": self.scan_types.names(),
            "DomainInstanceName": self.domain_instance_name,
            "Timestamp": self.timestamp.isoformat(),
        }
