"""
Discovery request model.

Describes one invocation: which hosts to scan (an explicit list or one or more
discovery sources), which probes to run and the minimum confidence to emit.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import InvalidDiscoveryRequestError
from ..models.enums import Confidence, DiscoveryType, ScanType
from .credential import Credential


def _coerce_flag(flag_cls, value):
    if value is None or isinstance(value, flag_cls):
        return value
    if isinstance(value, int):
        return flag_cls(value)
    if isinstance(value, str):
        return flag_cls.combine(part for part in value.split(",") if part.strip())
    return flag_cls.combine(value)


class DiscoveryRequest(BaseModel):
    """Parameters of a single discovery invocation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    computer_names: List[str] = Field(default_factory=list, description="Explicit hosts to scan")
    discovery_type: Optional[DiscoveryType] = Field(None, description="Host enumeration sources")
    scan_type: ScanType = Field(ScanType.DEFAULT, description="Probes to run per host")
    ip_ranges: List[str] = Field(default_factory=list, description="Ranges for IP_RANGE discovery")
    domain_controller: Optional[str] = Field(None, description="Directory server override")
    credential: Optional[Credential] = Field(None, description="Windows credential for directory and WinRM")
    sql_credential: Optional[Credential] = Field(None, description="SQL login for connect validation")
    tcp_ports: Optional[List[int]] = Field(None, description="TCP ports to probe (settings default when empty)")
    min_confidence: Confidence = Field(Confidence.LOW, description="Lowest confidence emitted")
    udp_timeout: Optional[float] = Field(None, description="SQL Browser reply timeout override", gt=0)

    @field_validator("discovery_type", mode="before")
    @classmethod
    def parse_discovery_type(cls, v):
        """Accept member names, comma separated names, lists or raw flag values."""
        flag = _coerce_flag(DiscoveryType, v)
        if flag is not None and not flag:
            return None
        return flag

    @field_validator("scan_type", mode="before")
    @classmethod
    def parse_scan_type(cls, v):
        """Accept member names, comma separated names, lists or raw flag values."""
        flag = _coerce_flag(ScanType, v)
        return ScanType.DEFAULT if flag is None else flag

    @field_validator("min_confidence", mode="before")
    @classmethod
    def parse_confidence(cls, v):
        if isinstance(v, str):
            return Confidence.parse(v)
        return v

    @field_validator("computer_names")
    @classmethod
    def strip_computer_names(cls, v: List[str]) -> List[str]:
        names = [name.strip() for name in v if name and name.strip()]
        for name in names:
            if name.startswith("-"):
                raise ValueError(f"Computer name cannot start with '-': {name}")
        return names

    @field_validator("tcp_ports")
    @classmethod
    def validate_ports(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if not v:
            return None
        for port in v:
            if port < 1 or port > 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {port}")
        return list(dict.fromkeys(v))

    def validate_selection(self) -> None:
        """
        Check the host selection before any scanning starts.

        Raises:
            InvalidDiscoveryRequestError: If both or neither of an explicit host
                list and a discovery type were supplied.
        """
        if self.computer_names and self.discovery_type:
            raise InvalidDiscoveryRequestError(
                "Specify either explicit computer names or a discovery type, not both"
            )
        if not self.computer_names and not self.discovery_type:
            raise InvalidDiscoveryRequestError(
                "Specify explicit computer names or at least one discovery type"
            )
        if self.ip_ranges and not (self.discovery_type and DiscoveryType.IP_RANGE in self.discovery_type):
            raise InvalidDiscoveryRequestError(
                "IP ranges are only used with the IPRange discovery type"
            )
