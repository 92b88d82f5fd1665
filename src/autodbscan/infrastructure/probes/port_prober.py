"""
TCP port prober.

One connect attempt per port, no retries. Refused, timed out and unreachable
all count as closed.
"""

from __future__ import annotations

import logging
import socket
from typing import Iterable

from autodbscan.domain.models import PortResult

logger = logging.getLogger(__name__)


class PortProber:
    """Checks which TCP ports accept a connection on a host."""

    def __init__(self, timeout: float | None = None):
        """
        Args:
            timeout: Seconds per connect attempt; None uses the OS default
        """
        self.timeout = timeout

    def is_open(self, host: str, port: int) -> bool:
        try:
            with socket.create_connection((host, port), timeout=self.timeout):
                return True
        except (OSError, ValueError) as e:
            logger.debug("TCP %s:%d closed (%s)", host, port, e)
            return False

    def probe(self, host: str, ports: Iterable[int]) -> list[PortResult]:
        """Attempt a connection on each port, in the given order."""
        results = []
        for port in ports:
            is_open = self.is_open(host, port)
            if is_open:
                logger.debug("TCP %s:%d open", host, port)
            results.append(PortResult(computer_name=host, port=port, is_open=is_open))
        return results
