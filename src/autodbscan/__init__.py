"""
AutoDBScan - SQL Server Instance Discovery Tool.

Finds SQL Server instances on a network by combining DNS, ping, Active
Directory SPNs, TCP port checks, the SQL Browser service, Windows service
enumeration and optional SQL logins into confidence-scored candidates.

Usage:
    # CLI
    autodbscan find --computer sql01 --computer sql02

    # Programmatic
    from autodbscan import DiscoveryRequest, DiscoveryService

    service = DiscoveryService()
    for candidate in service.find_instances(DiscoveryRequest(computer_names=["sql01"])):
        print(candidate.sql_instance, candidate.confidence.name)
"""

__version__ = "0.1.0"
__author__ = "AutoDBScan Team"

from autodbscan.application.discovery_service import DiscoveryService
from autodbscan.domain.config import DiscoveryRequest, DiscoverySettings

__all__ = ["DiscoveryRequest", "DiscoveryService", "DiscoverySettings", "__version__"]
