"""
Domain models package.

Pure data records with no I/O dependencies.
"""

from .candidate import InstanceCandidate
from .enums import Availability, Confidence, DiscoveryType, ScanType, ServiceType
from .evidence import (
    DEFAULT_INSTANCE,
    BrowserReply,
    DnsResolution,
    HostEvidence,
    PortResult,
    ServiceRecord,
    SpnRecord,
)

__all__ = [
    "Availability",
    "BrowserReply",
    "Confidence",
    "DEFAULT_INSTANCE",
    "DiscoveryType",
    "DnsResolution",
    "HostEvidence",
    "InstanceCandidate",
    "PortResult",
    "ScanType",
    "ServiceRecord",
    "ServiceType",
    "SpnRecord",
]
