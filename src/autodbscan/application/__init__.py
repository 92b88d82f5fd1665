"""
Application layer package.

Evidence aggregation, the per-host scan pipeline and the discovery orchestrator.
"""

from autodbscan.application.aggregator import aggregate
from autodbscan.application.discovery_service import DiscoveryService
from autodbscan.application.host_scanner import HostScanner

__all__ = ["DiscoveryService", "HostScanner", "aggregate"]
