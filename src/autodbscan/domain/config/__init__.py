"""
Configuration domain package.

Settings, credentials and the discovery request model.
"""

from .credential import Credential
from .request import DiscoveryRequest
from .settings import LDAP_PAGE_SIZE, DiscoverySettings

__all__ = [
    "Credential",
    "DiscoveryRequest",
    "DiscoverySettings",
    "LDAP_PAGE_SIZE",
]
