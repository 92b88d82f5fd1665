"""
Domain layer package.

Contains pure data models, request/settings models and the error hierarchy.
No module in this package performs network I/O.
"""

from autodbscan.domain.errors import (
    BrowserProbeError,
    DirectoryLookupError,
    DiscoveryError,
    InvalidDiscoveryRequestError,
    InvalidIpRangeError,
    SettingsError,
)
from autodbscan.domain.results import Failure, Result, Success

__all__ = [
    "BrowserProbeError",
    "DirectoryLookupError",
    "DiscoveryError",
    "Failure",
    "InvalidDiscoveryRequestError",
    "InvalidIpRangeError",
    "Result",
    "SettingsError",
    "Success",
]
