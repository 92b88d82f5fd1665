"""
Per-host scan pipeline.

Runs the requested probes against one host in a fixed order (DNS, ping, SPN,
TCP ports, SQL Browser, services), aggregates the evidence and optionally
validates every candidate with a real SQL login.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from autodbscan.application.aggregator import aggregate
from autodbscan.domain.config import DiscoveryRequest, DiscoverySettings
from autodbscan.domain.errors import DirectoryLookupError
from autodbscan.domain.models import (
    Confidence,
    DnsResolution,
    HostEvidence,
    InstanceCandidate,
    ScanType,
)
from autodbscan.domain.results import Failure
from autodbscan.infrastructure.probes import (
    BrowserProber,
    DirectoryProber,
    PortProber,
    ServiceProvider,
    ping_host,
    resolve_dns,
)
from autodbscan.infrastructure.sql_connect import SqlConnectValidator

logger = logging.getLogger(__name__)


class HostScanner:
    """
    Scans a single host and returns its instance candidates.

    Probe failures never escape: each one is logged at DEBUG and treated as
    absence of evidence.
    """

    def __init__(
        self,
        settings: DiscoverySettings,
        port_prober: PortProber,
        browser_prober: BrowserProber,
        directory_prober: Optional[DirectoryProber] = None,
        service_provider: Optional[ServiceProvider] = None,
        sql_validator: Optional[SqlConnectValidator] = None,
        dns_resolver: Callable[[str], Optional[DnsResolution]] = resolve_dns,
        pinger: Callable[[str, float], bool] = ping_host,
    ):
        self.settings = settings
        self.port_prober = port_prober
        self.browser_prober = browser_prober
        self.directory_prober = directory_prober
        self.service_provider = service_provider
        self.sql_validator = sql_validator
        self.dns_resolver = dns_resolver
        self.pinger = pinger

    def collect_evidence(self, computer_name: str, request: DiscoveryRequest) -> HostEvidence:
        """Run the probes selected by ``request.scan_type``, in pipeline order."""
        scan_types = request.scan_type
        evidence = HostEvidence(computer_name=computer_name, scan_types=scan_types)

        if ScanType.DNS_RESOLVE in scan_types:
            evidence.dns_resolution = self.dns_resolver(computer_name)
            logger.debug("%s DNS: %s", computer_name, evidence.dns_resolution)

        if ScanType.PING in scan_types:
            evidence.ping = self.pinger(computer_name, self.settings.ping_timeout)
            logger.debug("%s ping: %s", computer_name, evidence.ping)

        if ScanType.SPN in scan_types and self.directory_prober is not None:
            lookup_name = evidence.dns_resolution.fqdn if evidence.dns_resolution else computer_name
            try:
                evidence.spns = self.directory_prober.find_spns(lookup_name)
            except DirectoryLookupError as e:
                logger.debug("%s SPN lookup failed: %s", computer_name, e)

        # Port results always feed the aggregator
        ports = request.tcp_ports or self.settings.default_tcp_ports
        evidence.ports = self.port_prober.probe(computer_name, ports)

        if ScanType.BROWSER in scan_types:
            evidence.browser_replies = self.browser_prober.probe(computer_name)

        if ScanType.SQL_SERVICE in scan_types and self.service_provider is not None:
            services = self.service_provider.list_services(computer_name)
            if isinstance(services, Failure):
                logger.debug("%s service enumeration failed: %s", computer_name, services.error)
            else:
                evidence.services = services.value

        return evidence

    def scan(self, computer_name: str, request: DiscoveryRequest) -> list[InstanceCandidate]:
        """
        Scan one host.

        Returns:
            Candidates at or above ``request.min_confidence``
        """
        logger.info("Scanning %s", computer_name)
        evidence = self.collect_evidence(computer_name, request)

        validate = ScanType.SQL_CONNECT in request.scan_type and self.sql_validator is not None
        # Low candidates may still be promoted by a successful login
        threshold = min(request.min_confidence, Confidence.LOW) if validate else request.min_confidence
        candidates = aggregate(evidence, threshold)

        if validate:
            candidates = self.validate_candidates(candidates)
            candidates = [c for c in candidates if c.confidence >= request.min_confidence]

        logger.info("%s: %d candidate(s)", computer_name, len(candidates))
        return candidates

    def validate_candidates(self, candidates: list[InstanceCandidate]) -> list[InstanceCandidate]:
        """
        Attempt a SQL login on each candidate and deduplicate by server name.

        Success and server-side refusals (severity < 25) mark the candidate
        as connected with High confidence; other failures leave it as is.
        """
        validated: list[InstanceCandidate] = []
        seen_instances: set[str] = set()

        for candidate in candidates:
            outcome = self.sql_validator.validate(candidate)
            if isinstance(outcome, Failure):
                if outcome.error.server_responded:
                    candidate.sql_connected = True
                    candidate.confidence = Confidence.HIGH
                    logger.debug("%s answered but refused the login", candidate.sql_instance)
                else:
                    candidate.sql_connected = False
                validated.append(candidate)
                continue

            identity = outcome.value
            candidate.sql_connected = True
            candidate.confidence = Confidence.HIGH
            candidate.machine_name = identity.physical_name or candidate.machine_name
            candidate.domain_instance_name = identity.domain_instance_name or None

            key = (candidate.domain_instance_name or "").lower()
            if key and key in seen_instances:
                logger.debug("%s duplicates %s, skipped", candidate.sql_instance, candidate.domain_instance_name)
                continue
            if key:
                seen_instances.add(key)
            validated.append(candidate)

        return validated
