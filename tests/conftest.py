"""
Shared fixtures for discovery tests.

Evidence builders create HostEvidence the way the probes would, so tests
can describe a host topology in a few lines.
"""

from __future__ import annotations

import pytest

from autodbscan.domain.config import DiscoveryRequest, DiscoverySettings
from autodbscan.domain.models import (
    BrowserReply,
    DnsResolution,
    HostEvidence,
    PortResult,
    ScanType,
    ServiceRecord,
    ServiceType,
    SpnRecord,
)


def engine_service(host: str, instance: str, state: str = "Running") -> ServiceRecord:
    name = "MSSQLSERVER" if instance.upper() == "MSSQLSERVER" else f"MSSQL${instance}"
    return ServiceRecord(
        computer_name=host,
        service_name=name,
        service_type=ServiceType.ENGINE,
        instance_name=instance,
        state=state,
    )


def browser_reply(host: str, instance: str, port: int | None = None, version: str = "15.0.2000.5") -> BrowserReply:
    return BrowserReply(
        machine_name=host.split(".")[0].upper(),
        computer_name=host,
        instance_name=instance,
        version=version,
        is_clustered=False,
        tcp_port=port,
    )


def make_evidence(
    host: str,
    *,
    open_ports=(),
    closed_ports=(),
    replies=(),
    services=(),
    spns=(),
    ping: bool = False,
    dns: bool = False,
) -> HostEvidence:
    ports = [PortResult(host, port, True) for port in open_ports]
    ports += [PortResult(host, port, False) for port in closed_ports]
    return HostEvidence(
        computer_name=host,
        scan_types=ScanType.DEFAULT,
        dns_resolution=DnsResolution(host, host, ("10.0.0.1",)) if dns else None,
        ping=ping,
        spns=[SpnRecord.parse(spn) for spn in spns],
        ports=ports,
        browser_replies=list(replies),
        services=list(services),
    )


@pytest.fixture
def settings() -> DiscoverySettings:
    return DiscoverySettings()


@pytest.fixture
def host_request() -> DiscoveryRequest:
    return DiscoveryRequest(computer_names=["sql1"])
