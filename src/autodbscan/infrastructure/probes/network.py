"""
Host-level network helpers: DNS resolution, ICMP ping and local addresses.

All helpers report failure as absence of evidence (None/False/empty).
"""

from __future__ import annotations

import logging
import platform
import socket
import subprocess

from autodbscan.domain.models import DnsResolution

logger = logging.getLogger(__name__)


def resolve_dns(host: str) -> DnsResolution | None:
    """Forward lookup of ``host``; None when the name does not resolve."""
    try:
        hostname, _aliases, addresses = socket.gethostbyname_ex(host)
    except (socket.herror, socket.gaierror, TimeoutError, UnicodeError) as e:
        logger.debug("DNS resolution failed for %s: %s", host, e)
        return None

    try:
        fqdn = socket.getfqdn(hostname)
    except OSError:
        fqdn = hostname

    return DnsResolution(hostname=hostname, fqdn=fqdn or hostname, addresses=tuple(addresses))


def ping_host(host: str, timeout: float = 1.0) -> bool:
    """Send one ICMP echo through the platform ping command."""
    if timeout <= 0 or host.startswith("-"):
        return False
    if platform.system().lower() == "windows":
        cmd = ["ping", "-n", "1", "-w", str(max(1, int(timeout * 1000))), host]
    else:
        cmd = ["ping", "-c", "1", "-W", str(max(1, int(round(timeout)))), host]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout + 2.0, check=False)
    except (OSError, ValueError, subprocess.TimeoutExpired) as e:
        logger.debug("Ping of %s failed: %s", host, e)
        return False
    return result.returncode == 0


def local_ipv4_addresses() -> list[str]:
    """Non-loopback IPv4 addresses of this machine."""
    addresses: list[str] = []
    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET)
    except (socket.gaierror, OSError) as e:
        logger.debug("Could not enumerate local addresses: %s", e)
        return addresses

    for info in infos:
        address = info[4][0]
        if not address.startswith("127.") and address not in addresses:
            addresses.append(address)
    return addresses
