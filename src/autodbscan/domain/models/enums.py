"""
Domain enums for instance discovery.

Scan and discovery selections are bit flags: callers combine them with ``|``
and the pipeline tests them with ``&``.
"""

from enum import Enum, Flag, IntEnum


def _normalize(value: str) -> str:
    return value.strip().replace("_", "").replace("-", "").lower()


class _ParseMixin:
    """Case-insensitive lookup by member name (``SqlConnect`` == ``SQL_CONNECT``)."""

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        wanted = _normalize(str(value))
        for name, member in cls.__members__.items():
            if _normalize(name) == wanted:
                return member
        valid = ", ".join(cls.__members__)
        raise ValueError(f"Invalid {cls.__name__} '{value}'. Valid values: {valid}")


class ScanType(_ParseMixin, Flag):
    """Probes the per-host pipeline may run."""

    BROWSER = 1
    SQL_SERVICE = 2
    SPN = 4
    TCP_PORT = 8
    DNS_RESOLVE = 16
    SQL_CONNECT = 32
    PING = 64
    DEFAULT = BROWSER | SQL_SERVICE | SPN | TCP_PORT | DNS_RESOLVE | PING
    ALL = DEFAULT | SQL_CONNECT

    @classmethod
    def combine(cls, values) -> "ScanType":
        """Fold an iterable of names or members into one flag value."""
        result = cls(0)
        for value in values:
            result |= cls.parse(value)
        return result

    def names(self) -> list[str]:
        """Single-bit member names contained in this value, in bit order."""
        return [
            member.name
            for member in type(self)
            if member.value & (member.value - 1) == 0 and member in self
        ]


class DiscoveryType(_ParseMixin, Flag):
    """Sources used to enumerate target hosts."""

    DOMAIN_SPN = 1
    DATA_SOURCE_ENUMERATION = 2
    IP_RANGE = 4
    DOMAIN_SERVER = 8
    ALL = DOMAIN_SPN | DATA_SOURCE_ENUMERATION | IP_RANGE | DOMAIN_SERVER

    @classmethod
    def combine(cls, values) -> "DiscoveryType":
        result = cls(0)
        for value in values:
            result |= cls.parse(value)
        return result


class Confidence(_ParseMixin, IntEnum):
    """How certain the aggregator is that a candidate is a real instance."""

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


class Availability(Enum):
    """Instance availability derived from the Engine service state."""

    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    UNKNOWN = "Unknown"

    @classmethod
    def from_service_state(cls, state: str | None) -> "Availability":
        normalized = (state or "").strip().lower()
        if normalized == "running":
            return cls.AVAILABLE
        if normalized == "stopped":
            return cls.UNAVAILABLE
        return cls.UNKNOWN


class ServiceType(Enum):
    """SQL Server related Windows service categories."""

    ENGINE = "Engine"
    AGENT = "Agent"
    BROWSER = "Browser"
    FULL_TEXT = "FullText"
    SSIS = "SSIS"
    SSAS = "SSAS"
    SSRS = "SSRS"
    POLYBASE = "PolyBase"
    LAUNCHPAD = "Launchpad"
    TELEMETRY = "Telemetry"
    WRITER = "Writer"
    UNKNOWN = "Unknown"
