"""
Exception hierarchy for instance discovery.

Only request validation terminates an invocation. Directory failures are
raised by the directory prober and downgraded to warnings by the orchestrator;
every other probe reports absence of evidence instead of raising.
"""


class DiscoveryError(Exception):
    """Base class for all discovery errors."""


class InvalidDiscoveryRequestError(DiscoveryError):
    """The combination of request parameters cannot be executed."""


class InvalidIpRangeError(DiscoveryError, ValueError):
    """An IP range specification string could not be parsed."""

    def __init__(self, ip_range: str, reason: str):
        self.ip_range = ip_range
        self.reason = reason
        super().__init__(f"Invalid IP range '{ip_range}': {reason}")


class DirectoryLookupError(DiscoveryError):
    """A directory (LDAP) bind or search failed."""


class BrowserProbeError(DiscoveryError):
    """SQL Browser query failed and the caller asked for the error."""


class SettingsError(DiscoveryError):
    """Discovery settings or host list files are missing or malformed."""
