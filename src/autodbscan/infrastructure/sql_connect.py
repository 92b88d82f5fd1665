"""
SQL Server connect validation.

Handles:
- ODBC driver detection and fallback
- Connection string building for candidate endpoints
- Server identity lookup after a successful login
- Classification of failed logins into "server answered" vs "nothing there"

An error raised by the server itself carries a severity class. Anything
below 25 means a SQL Server endpoint spoke TDS and refused the request
(e.g. login failed, class 14), which still proves the instance exists.
"""

from __future__ import annotations

import logging
import re
from contextlib import closing
from dataclasses import dataclass
from typing import Optional

import pyodbc

from autodbscan.domain.config import Credential
from autodbscan.domain.models import InstanceCandidate
from autodbscan.domain.results import Failure, Result, Success


logger = logging.getLogger(__name__)

# Below this class the server itself rejected the request
SERVER_RESPONDED_SEVERITY_LIMIT = 25

_LOGIN_FAILED_SEVERITY = 14
_PRELOGIN_SEVERITY = 20
_SERVER_MARKER = "[sql server]"
_SERVER_SQLSTATES = {"28000", "42000"}
_NATIVE_ERROR = re.compile(r"\((\d+)\)\s*(?:\(SQL\w+\))?\s*$")

SERVER_IDENTITY_QUERY = """
    SELECT
        CAST(SERVERPROPERTY('ComputerNamePhysicalNetBIOS') AS NVARCHAR(256)) AS PhysicalName,
        CAST(SERVERPROPERTY('ServerName') AS NVARCHAR(256)) AS ServerName,
        CAST(SERVERPROPERTY('InstanceName') AS NVARCHAR(256)) AS InstanceName,
        CAST(SERVERPROPERTY('ProductVersion') AS NVARCHAR(128)) AS Version
"""


@dataclass(frozen=True)
class ServerIdentity:
    """What a successfully connected server reports about itself."""
    physical_name: str
    domain_instance_name: str
    instance_name: Optional[str]
    version: str


@dataclass(frozen=True)
class ConnectFailure:
    """Classified connection failure."""
    message: str
    sqlstate: Optional[str] = None
    native_error: Optional[int] = None
    severity: Optional[int] = None

    @property
    def server_responded(self) -> bool:
        return self.severity is not None and self.severity < SERVER_RESPONDED_SEVERITY_LIMIT


def classify_odbc_error(exc: Exception) -> ConnectFailure:
    """
    Classify an ODBC error.

    ODBC does not expose the TDS severity class, so it is inferred: an error
    text tagged ``[SQL Server]`` was produced by the server, as are SQLSTATE
    28000 (invalid authorization) and 42000 (access/syntax). Driver-side
    failures such as 08001 (no listener) or HYT00 (timeout) get no severity.
    """
    args = getattr(exc, "args", ())
    sqlstate = str(args[0]) if len(args) > 1 else None
    message = str(args[1]) if len(args) > 1 else str(exc)

    native = _NATIVE_ERROR.search(message)
    native_error = int(native.group(1)) if native else None

    severity = None
    lowered = message.lower()
    if sqlstate in _SERVER_SQLSTATES:
        severity = _LOGIN_FAILED_SEVERITY
    elif _SERVER_MARKER in lowered:
        severity = _PRELOGIN_SEVERITY if sqlstate == "08S01" else _LOGIN_FAILED_SEVERITY

    return ConnectFailure(message=message, sqlstate=sqlstate, native_error=native_error, severity=severity)


class SqlConnector:
    """
    ODBC connection builder for one SQL Server endpoint.

    Supports integrated (current Windows identity) and SQL authentication.
    """

    _driver_cache: str | None = None

    def __init__(self, server_instance: str, credential: Credential | None = None,
                 connect_timeout: int = 15):
        """
        Initialize SQL connector.

        Args:
            server_instance: Server instance string (e.g., "SERVER\\INSTANCE" or "SERVER,PORT")
            credential: SQL login; None uses integrated authentication
            connect_timeout: Login timeout in seconds
        """
        self.server_instance = server_instance
        self.credential = credential
        self.connect_timeout = connect_timeout

    @classmethod
    def _detect_odbc_driver(cls) -> str:
        """
        Detect best available ODBC driver.

        Returns:
            ODBC driver name

        Raises:
            RuntimeError: If no suitable driver found
        """
        if cls._driver_cache:
            return cls._driver_cache

        drivers = pyodbc.drivers()
        logger.debug("Available ODBC drivers: %s", drivers)

        # Preferred drivers (newest first), then legacy fallbacks
        preferred = [
            "ODBC Driver 18 for SQL Server",
            "ODBC Driver 17 for SQL Server",
            "ODBC Driver 13 for SQL Server",
            "ODBC Driver 11 for SQL Server",
            "SQL Server Native Client 11.0",
            "SQL Server Native Client 10.0",
            "SQL Server",
        ]

        for driver in preferred:
            if driver in drivers:
                logger.debug("Using ODBC driver: %s", driver)
                cls._driver_cache = driver
                return driver

        raise RuntimeError("No SQL Server ODBC driver found. Please install ODBC Driver 17 or 18.")

    def build_connection_string(self) -> str:
        """Build ODBC connection string."""
        driver = self._detect_odbc_driver()

        parts = [
            f"DRIVER={{{driver}}}",
            f"SERVER={self.server_instance}",
            "DATABASE=master",
            "Encrypt=no",
            "TrustServerCertificate=yes",
            "APP=autodbscan",
        ]

        if self.credential:
            parts.append(f"UID={self.credential.username}")
            parts.append(f"PWD={{{self.credential.get_password()}}}")
        else:
            parts.append("Trusted_Connection=yes")

        return ";".join(parts)

    def read_identity(self) -> ServerIdentity:
        """
        Connect and read the server's own identity.

        Raises:
            pyodbc.Error: If connection or query fails
        """
        conn_str = self.build_connection_string()
        with closing(pyodbc.connect(conn_str, timeout=self.connect_timeout)) as conn:
            cursor = conn.cursor()
            cursor.execute(SERVER_IDENTITY_QUERY)
            row = cursor.fetchone()

        return ServerIdentity(
            physical_name=row.PhysicalName or "",
            domain_instance_name=row.ServerName or "",
            instance_name=row.InstanceName,
            version=row.Version or "",
        )


class SqlConnectValidator:
    """Attempts a real login against candidate endpoints."""

    def __init__(self, credential: Credential | None = None, connect_timeout: int = 15):
        self.credential = credential
        self.connect_timeout = connect_timeout

    def validate(self, candidate: InstanceCandidate) -> Result[ServerIdentity, ConnectFailure]:
        """
        Try to log in to ``candidate``.

        Returns:
            Success with the server identity, or Failure with the classified error
        """
        connector = SqlConnector(candidate.connect_string, self.credential, self.connect_timeout)
        try:
            identity = connector.read_identity()
        except pyodbc.Error as e:
            failure = classify_odbc_error(e)
            logger.debug(
                "SQL connect to %s failed (sqlstate=%s, severity=%s): %s",
                candidate.connect_string, failure.sqlstate, failure.severity, failure.message,
            )
            return Failure(failure)
        except RuntimeError as e:
            # No ODBC driver installed
            return Failure(ConnectFailure(message=str(e)))

        logger.debug("SQL connect to %s succeeded: %s", candidate.connect_string, identity.domain_instance_name)
        return Success(identity)
