"""
Discovery settings domain model.

Timeouts and defaults that control probe behaviour. Loaded from an optional
JSON file; every field has a working default.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Directory searches are paged at this size to stay below server-side
# result-size limits.
LDAP_PAGE_SIZE = 200


class DiscoverySettings(BaseModel):
    """
    Tunable parameters for a discovery run.

    ``tcp_connect_timeout`` of None means the operating system default.
    """

    model_config = ConfigDict(extra="ignore")

    udp_timeout: float = Field(
        default=2.0,
        description="Seconds to wait for a SQL Browser reply",
        ge=0.1,
        le=60
    )

    tcp_connect_timeout: Optional[float] = Field(
        default=None,
        description="Seconds per TCP connect attempt (None = OS default)",
        gt=0
    )

    ping_timeout: float = Field(
        default=1.0,
        description="Seconds to wait for an ICMP echo reply",
        gt=0,
        le=30
    )

    sql_connect_timeout: int = Field(
        default=15,
        description="Seconds to wait for an ODBC login during connect validation",
        ge=1,
        le=120
    )

    broadcast_timeout: float = Field(
        default=3.0,
        description="Seconds to collect SQL Browser broadcast replies",
        ge=0.1,
        le=60
    )

    winrm_port: int = Field(
        default=5985,
        description="WinRM HTTP port used for remote service enumeration",
        ge=1,
        le=65535
    )

    winrm_transport: str = Field(
        default="ntlm",
        description="pywinrm transport for remote service enumeration"
    )

    default_tcp_ports: List[int] = Field(
        default_factory=lambda: [1433],
        description="TCP ports probed when the request names none"
    )

    max_range_size: int = Field(
        default=65536,
        description="Largest number of addresses a single IP range may expand to",
        ge=1
    )

    @field_validator('default_tcp_ports')
    @classmethod
    def validate_ports(cls, v: List[int]) -> List[int]:
        """Validate port numbers and drop duplicates, keeping order."""
        ports: List[int] = []
        for port in v:
            if port < 1 or port > 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {port}")
            if port not in ports:
                ports.append(port)
        if not ports:
            raise ValueError("At least one TCP port is required")
        return ports

    @field_validator('udp_timeout')
    @classmethod
    def warn_long_udp_timeout(cls, v: float) -> float:
        """Long browser timeouts multiply across every scanned host."""
        if v > 10:
            logger.warning("UDP timeout of %ss is applied per host - large scans will be slow", v)
        return v
