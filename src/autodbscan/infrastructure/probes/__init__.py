"""
Host probes.

Each prober owns its socket or connection for the duration of one call and
reports failure as absence of evidence, except the directory prober which
raises DirectoryLookupError.
"""

from .browser_prober import BrowserProber, parse_ssrp_response
from .directory_prober import DirectoryProber
from .network import local_ipv4_addresses, ping_host, resolve_dns
from .port_prober import PortProber
from .service_prober import CimServiceProvider, ServiceProvider, classify_service

__all__ = [
    "BrowserProber",
    "CimServiceProvider",
    "DirectoryProber",
    "PortProber",
    "ServiceProvider",
    "classify_service",
    "local_ipv4_addresses",
    "parse_ssrp_response",
    "ping_host",
    "resolve_dns",
]
