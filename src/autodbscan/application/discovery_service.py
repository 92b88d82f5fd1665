"""
Discovery orchestrator.

Produces the stream of hosts to scan (an explicit list or the selected
discovery sources), feeds each unique host through the HostScanner once and
yields the resulting candidates lazily. Hosts that the consumer never pulls
are never scanned.

Usage:
    service = DiscoveryService()
    request = DiscoveryRequest(discovery_type=DiscoveryType.DOMAIN_SPN)
    for candidate in service.find_instances(request):
        print(candidate.sql_instance, candidate.confidence.name)
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional

from autodbscan.application.host_scanner import HostScanner
from autodbscan.domain.config import DiscoveryRequest, DiscoverySettings
from autodbscan.domain.errors import BrowserProbeError, DirectoryLookupError
from autodbscan.domain.models import DiscoveryType, InstanceCandidate, ScanType
from autodbscan.domain.targets import expand_ip_ranges, local_subnet_range, normalize_host
from autodbscan.infrastructure.probes import (
    BrowserProber,
    CimServiceProvider,
    DirectoryProber,
    PortProber,
    local_ipv4_addresses,
)
from autodbscan.infrastructure.sql_connect import SqlConnectValidator

logger = logging.getLogger(__name__)


class DiscoveryService:
    """
    Orchestrates host enumeration and per-host scanning.

    Collaborators default to the real probes; tests inject fakes.
    """

    def __init__(
        self,
        settings: Optional[DiscoverySettings] = None,
        scanner_factory: Optional[Callable[[DiscoveryRequest], HostScanner]] = None,
        directory_factory: Optional[Callable[[DiscoveryRequest], DirectoryProber]] = None,
        browser_prober: Optional[BrowserProber] = None,
        local_addresses: Callable[[], list[str]] = local_ipv4_addresses,
    ):
        self.settings = settings or DiscoverySettings()
        self._scanner_factory = scanner_factory or self._build_scanner
        self._directory_factory = directory_factory or self._build_directory_prober
        self._browser_prober = browser_prober
        self._local_addresses = local_addresses

    def _build_directory_prober(self, request: DiscoveryRequest) -> DirectoryProber:
        return DirectoryProber(domain_controller=request.domain_controller, credential=request.credential)

    def _browser(self, request: DiscoveryRequest) -> BrowserProber:
        if self._browser_prober is not None:
            return self._browser_prober
        return BrowserProber(timeout=request.udp_timeout or self.settings.udp_timeout)

    def _build_scanner(self, request: DiscoveryRequest) -> HostScanner:
        validator = None
        if ScanType.SQL_CONNECT in request.scan_type:
            validator = SqlConnectValidator(request.sql_credential, self.settings.sql_connect_timeout)

        return HostScanner(
            settings=self.settings,
            port_prober=PortProber(self.settings.tcp_connect_timeout),
            browser_prober=self._browser(request),
            directory_prober=self._directory_factory(request) if ScanType.SPN in request.scan_type else None,
            service_provider=CimServiceProvider(
                credential=request.credential,
                winrm_port=self.settings.winrm_port,
                transport=self.settings.winrm_transport,
            ),
            sql_validator=validator,
        )

    def find_instances(self, request: DiscoveryRequest) -> Iterator[InstanceCandidate]:
        """
        Validate ``request`` and return a lazy stream of candidates.

        Raises:
            InvalidDiscoveryRequestError: If the host selection is invalid
            InvalidIpRangeError: If an IP range string does not parse
        """
        request.validate_selection()

        addresses: list[str] = []
        if request.discovery_type and DiscoveryType.IP_RANGE in request.discovery_type:
            addresses = self._range_addresses(request)

        return self._scan(request, addresses)

    def _scan(self, request: DiscoveryRequest, addresses: list[str]) -> Iterator[InstanceCandidate]:
        scanner = self._scanner_factory(request)
        seen: set[str] = set()
        scanned = 0

        for computer_name in self._iter_hosts(request, addresses):
            identity = normalize_host(computer_name)
            if not identity or identity in seen:
                continue
            seen.add(identity)
            scanned += 1
            yield from scanner.scan(computer_name, request)

        logger.info("Discovery finished: %d host(s) scanned", scanned)

    def _range_addresses(self, request: DiscoveryRequest) -> list[str]:
        ranges = list(request.ip_ranges)
        if not ranges:
            ranges = [local_subnet_range(address) for address in self._local_addresses()]
            if not ranges:
                logger.warning("No IP range given and no local IPv4 address found; IPRange discovery skipped")
                return []
            logger.info("No IP range given, scanning local subnets: %s", ", ".join(ranges))
        return expand_ip_ranges(ranges, max_size=self.settings.max_range_size)

    def _iter_hosts(self, request: DiscoveryRequest, addresses: list[str]) -> Iterator[str]:
        if request.computer_names:
            yield from request.computer_names
            return

        discovery_type = request.discovery_type
        sources = [
            (DiscoveryType.DOMAIN_SPN, "Domain SPN search", self._hosts_from_spns),
            (DiscoveryType.DATA_SOURCE_ENUMERATION, "SQL Browser broadcast", self._hosts_from_broadcast),
            (DiscoveryType.IP_RANGE, "IP range", lambda req: list(addresses)),
            (DiscoveryType.DOMAIN_SERVER, "Domain server search", self._hosts_from_domain_servers),
        ]
        for flag, label, source in sources:
            if flag not in discovery_type:
                continue
            try:
                hosts = source(request)
            except (DirectoryLookupError, BrowserProbeError) as e:
                logger.warning("%s failed, source skipped: %s", label, e)
                continue
            logger.info("%s returned %d host(s)", label, len(hosts))
            yield from hosts

    def _hosts_from_spns(self, request: DiscoveryRequest) -> list[str]:
        spns = self._directory_factory(request).find_spns()
        return list(dict.fromkeys(spn.host for spn in spns))

    def _hosts_from_broadcast(self, request: DiscoveryRequest) -> list[str]:
        replies = self._browser(request).broadcast(self.settings.broadcast_timeout)
        return list(dict.fromkeys(reply.machine_name or reply.computer_name for reply in replies))

    def _hosts_from_domain_servers(self, request: DiscoveryRequest) -> list[str]:
        return self._directory_factory(request).find_windows_servers()
