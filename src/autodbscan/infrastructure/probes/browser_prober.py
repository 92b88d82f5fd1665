"""
SQL Server Browser prober (SSRP over UDP 1434).

Request opcodes:
    0x02  CLNT_BCAST_EX  - broadcast, every browser on the segment answers
    0x03  CLNT_UCAST_EX  - unicast, one browser lists all its instances

A response is ``0x05``, a little-endian 16-bit length and ASCII text made of
one record per instance:

    ServerName;SQL1;InstanceName;MSSQLSERVER;IsClustered;No;Version;15.0.2000.5;tcp;1433;;
"""

from __future__ import annotations

import logging
import re
import socket
import time

from autodbscan.domain.errors import BrowserProbeError
from autodbscan.domain.models import BrowserReply

logger = logging.getLogger(__name__)

BROWSER_PORT = 1434
CLNT_BCAST_EX = b"\x02"
CLNT_UCAST_EX = b"\x03"
SVR_RESP = 0x05
BROADCAST_ADDRESS = "255.255.255.255"
_MAX_DATAGRAM = 65535

_RECORD_PATTERN = re.compile(
    r"ServerName;(?P<server>[^;]+);"
    r"InstanceName;(?P<instance>[^;]+);"
    r"IsClustered;(?P<clustered>[^;]+);"
    r"Version;(?P<version>[^;]+);",
    re.IGNORECASE,
)
_TCP_PATTERN = re.compile(r"(?:^|;)tcp;(?P<port>\d+)", re.IGNORECASE)


def _decode(data: bytes) -> str:
    if len(data) >= 3 and data[0] == SVR_RESP:
        data = data[3:]
    return data.decode("ascii", errors="replace")


def parse_ssrp_response(text: str, computer_name: str) -> list[BrowserReply]:
    """
    Parse every instance record in an SSRP response body.

    Args:
        text: Decoded response text (header already stripped or not)
        computer_name: Host that was queried

    Returns:
        One BrowserReply per record; empty if nothing matched
    """
    matches = list(_RECORD_PATTERN.finditer(text))
    replies = []
    for index, match in enumerate(matches):
        # Protocol entries for a record sit between its Version field and the next record
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        tail = text[match.end() - 1:end]
        tcp = _TCP_PATTERN.search(tail)
        replies.append(
            BrowserReply(
                machine_name=match.group("server").strip(),
                computer_name=computer_name,
                instance_name=match.group("instance").strip(),
                version=match.group("version").strip(),
                is_clustered=match.group("clustered").strip().lower() == "yes",
                tcp_port=int(tcp.group("port")) if tcp else None,
            )
        )
    return replies


class BrowserProber:
    """Queries the SQL Server Browser service."""

    def __init__(self, timeout: float = 2.0, port: int = BROWSER_PORT):
        """
        Args:
            timeout: Seconds to wait for a reply
            port: UDP port of the browser service
        """
        self.timeout = timeout
        self.port = port

    def probe(self, host: str, raise_errors: bool = False) -> list[BrowserReply]:
        """
        Ask the browser on ``host`` for its instance list.

        Returns:
            Parsed replies; empty on timeout or any socket error

        Raises:
            BrowserProbeError: Only when ``raise_errors`` is True
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.settimeout(self.timeout)
                sock.sendto(CLNT_UCAST_EX, (host, self.port))
                data, _address = sock.recvfrom(_MAX_DATAGRAM)
        except OSError as e:
            logger.debug("No SQL Browser reply from %s: %s", host, e)
            if raise_errors:
                raise BrowserProbeError(f"SQL Browser query to {host}:{self.port} failed: {e}") from e
            return []

        replies = parse_ssrp_response(_decode(data), host)
        logger.debug("SQL Browser on %s reported %d instance(s)", host, len(replies))
        return replies

    def broadcast(self, timeout: float = 3.0, address: str = BROADCAST_ADDRESS) -> list[BrowserReply]:
        """
        Broadcast a browser request and collect every answer until ``timeout``.

        ``computer_name`` of each reply is the sender's address.

        Raises:
            BrowserProbeError: If the broadcast could not be sent
        """
        replies: list[BrowserReply] = []
        deadline = time.monotonic() + timeout
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                sock.sendto(CLNT_BCAST_EX, (address, self.port))
                while True:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        break
                    sock.settimeout(remaining)
                    try:
                        data, sender = sock.recvfrom(_MAX_DATAGRAM)
                    except socket.timeout:
                        break
                    replies.extend(parse_ssrp_response(_decode(data), sender[0]))
        except OSError as e:
            raise BrowserProbeError(f"SQL Browser broadcast failed: {e}") from e

        logger.info("SQL Browser broadcast returned %d instance record(s)", len(replies))
        return replies
