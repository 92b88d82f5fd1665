"""
Evidence aggregator.

Folds the raw evidence of one host into instance candidates and assigns each
a confidence level:

    Low     an SPN names the instance, or a port other than 1433 is open
    Medium  the SQL Browser reported the instance, or an open port is 1433
            or is corroborated by an SPN
    High    a SQL Server service for the instance is installed

A port is reported once: when a named instance already explains it (browser
reply, or 1433 for the default instance) no port-only candidate is created.
"""

from __future__ import annotations

import logging

from autodbscan.domain.models import (
    DEFAULT_INSTANCE,
    Availability,
    BrowserReply,
    Confidence,
    HostEvidence,
    InstanceCandidate,
    ServiceRecord,
    ServiceType,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1433


def _instance_names(evidence: HostEvidence) -> dict[str, str]:
    """Unique instance names (upper-cased key -> first seen spelling)."""
    names: dict[str, str] = {}
    sources = (
        [service.instance_name for service in evidence.services if service.instance_name]
        + [reply.instance_name for reply in evidence.browser_replies]
        + [spn.instance_name for spn in evidence.spns if spn.instance_name]
    )
    for name in sources:
        names.setdefault(name.upper(), name)
    return names


def _port_signals(evidence: HostEvidence) -> list[int]:
    ports: dict[int, None] = {}
    for result in evidence.ports:
        if result.is_open:
            ports.setdefault(result.port)
    for port in sorted(evidence.spn_ports):
        ports.setdefault(port)
    return list(ports)


def _engine_availability(services: list[ServiceRecord]) -> Availability:
    engine = next((s for s in services if s.service_type is ServiceType.ENGINE), None)
    if engine is None:
        return Availability.UNKNOWN
    return Availability.from_service_state(engine.state)


def _new_candidate(evidence: HostEvidence, system_services: list[ServiceRecord], **fields) -> InstanceCandidate:
    return InstanceCandidate(
        computer_name=evidence.computer_name,
        machine_name=fields.pop("machine_name", evidence.computer_name),
        dns_resolution=evidence.dns_resolution,
        ping=evidence.ping,
        scan_types=evidence.scan_types,
        system_services=list(system_services),
        ports_scanned=list(evidence.ports),
        **fields,
    )


def aggregate(evidence: HostEvidence, min_confidence: Confidence = Confidence.LOW) -> list[InstanceCandidate]:
    """
    Build the candidates for one host.

    Args:
        evidence: Everything the probes found for the host
        min_confidence: Candidates below this level are dropped

    Returns:
        Candidates in discovery order: named instances first, then ports
    """
    system_services = [s for s in evidence.services if not s.instance_name]
    names = _instance_names(evidence)
    ports = _port_signals(evidence)
    open_ports = evidence.open_ports
    spn_ports = evidence.spn_ports

    if not names and not ports:
        if evidence.is_alive and min_confidence == Confidence.NONE:
            logger.debug("%s is alive but shows no SQL Server evidence", evidence.computer_name)
            return [_new_candidate(evidence, system_services)]
        logger.debug("No SQL Server evidence found on %s", evidence.computer_name)
        return []

    browser_ports = {reply.tcp_port for reply in evidence.browser_replies if reply.tcp_port}
    claimed: set[int] = set()
    candidates: list[InstanceCandidate] = []

    for key, name in names.items():
        reply: BrowserReply | None = next(
            (r for r in evidence.browser_replies if r.instance_name.upper() == key), None
        )
        services = [s for s in evidence.services if s.instance_name and s.instance_name.upper() == key]

        confidence = Confidence.LOW
        availability = Availability.UNKNOWN
        port = None
        if reply:
            confidence = Confidence.MEDIUM
            port = reply.tcp_port
        if services:
            confidence = Confidence.HIGH
            availability = _engine_availability(services)
        if port is None and key == DEFAULT_INSTANCE and DEFAULT_PORT in open_ports and DEFAULT_PORT not in browser_ports:
            port = DEFAULT_PORT

        if port:
            claimed.add(port)
        spns = [
            spn for spn in evidence.spns
            if (spn.instance_name and spn.instance_name.upper() == key) or (port and spn.port == port)
        ]

        candidates.append(
            _new_candidate(
                evidence,
                system_services,
                machine_name=reply.machine_name if reply else evidence.computer_name,
                instance_name=name,
                port=port,
                services=services,
                spns=spns,
                browse_reply=reply,
                confidence=confidence,
                availability=availability,
                tcp_connected=port in open_ports if port else False,
            )
        )

    for port in ports:
        if port in claimed:
            continue
        confidence = Confidence.LOW
        if (port == DEFAULT_PORT and port in open_ports) or port in spn_ports:
            confidence = Confidence.MEDIUM
        candidates.append(
            _new_candidate(
                evidence,
                system_services,
                port=port,
                spns=[spn for spn in evidence.spns if spn.port == port],
                confidence=confidence,
                tcp_connected=port in open_ports,
            )
        )

    kept = [candidate for candidate in candidates if candidate.confidence >= min_confidence]
    if len(kept) < len(candidates):
        logger.debug(
            "%s: dropped %d candidate(s) below %s confidence",
            evidence.computer_name, len(candidates) - len(kept), min_confidence.name,
        )
    return kept
