"""
SQL Server service enumeration (Win32_Service through CIM).

The local machine is queried through a PowerShell subprocess, remote machines
through WinRM (pywinrm). Service names are classified into a service type and
the instance they belong to, e.g. ``MSSQL$SALES`` -> (Engine, SALES).

Any failure is returned as ``Failure``; the scanner treats it as no evidence.
"""

from __future__ import annotations

import json
import logging
import socket
import subprocess
from typing import Any, Optional, Protocol

import winrm  # pywinrm

from autodbscan.domain.config import Credential
from autodbscan.domain.models import DEFAULT_INSTANCE, ServiceRecord, ServiceType
from autodbscan.domain.results import Failure, Result, Success

logger = logging.getLogger(__name__)

SERVICE_QUERY = (
    "$ErrorActionPreference='Stop';"
    "@(Get-CimInstance -ClassName Win32_Service |"
    " Where-Object { $_.Name -match 'SQL|MSOLAP|ReportServer|MsDtsServer|MSSQLLaunchpad' } |"
    " Select-Object Name, DisplayName, State, StartMode) | ConvertTo-Json -Compress"
)

_LOCAL_NAMES = {"localhost", "127.0.0.1", "::1", ".", "(local)"}

# (prefix, type, default instance); a "$NAME" suffix overrides the instance
_SERVICE_PREFIXES: list[tuple[str, ServiceType, Optional[str]]] = [
    ("mssqlserverolapservice", ServiceType.SSAS, DEFAULT_INSTANCE),
    ("mssqlserver", ServiceType.ENGINE, DEFAULT_INSTANCE),
    ("mssqlfdlauncher", ServiceType.FULL_TEXT, DEFAULT_INSTANCE),
    ("mssqllaunchpad", ServiceType.LAUNCHPAD, DEFAULT_INSTANCE),
    ("mssql", ServiceType.ENGINE, None),
    ("sqlserveragent", ServiceType.AGENT, DEFAULT_INSTANCE),
    ("sqlagent", ServiceType.AGENT, None),
    ("sqlbrowser", ServiceType.BROWSER, None),
    ("sqlwriter", ServiceType.WRITER, None),
    ("sqltelemetry", ServiceType.TELEMETRY, DEFAULT_INSTANCE),
    ("sqlpbengine", ServiceType.POLYBASE, DEFAULT_INSTANCE),
    ("sqlpbdms", ServiceType.POLYBASE, DEFAULT_INSTANCE),
    ("sqlserverreportingservices", ServiceType.SSRS, "SSRS"),
    ("reportserver", ServiceType.SSRS, DEFAULT_INSTANCE),
    ("msolap", ServiceType.SSAS, None),
    ("msdtsserver", ServiceType.SSIS, None),
]


def classify_service(service_name: str) -> tuple[ServiceType, Optional[str]]:
    """
    Derive service type and instance from a Windows service name.

    Returns:
        (ServiceType, instance name or None for host-wide services)
    """
    base, _, suffix = service_name.strip().partition("$")
    lowered = base.lower()
    for prefix, service_type, default_instance in _SERVICE_PREFIXES:
        if prefix == "msdtsserver":
            if lowered.startswith(prefix):
                return service_type, None
            continue
        if lowered != prefix:
            continue
        if suffix:
            return service_type, suffix
        return service_type, default_instance
    return ServiceType.UNKNOWN, suffix or None


def _state_text(value: Any) -> str:
    # ConvertTo-Json on Windows PowerShell 5.1 may emit enums as integers
    if isinstance(value, int):
        return {1: "Stopped", 4: "Running", 7: "Paused"}.get(value, "Unknown")
    return str(value) if value else "Unknown"


def parse_service_json(output: str, computer_name: str) -> list[ServiceRecord]:
    """
    Parse ``ConvertTo-Json`` output into service records.

    Unknown service names are dropped.
    """
    output = output.strip()
    if not output:
        return []
    data = json.loads(output)
    if isinstance(data, dict):
        data = [data]

    records = []
    for item in data:
        name = str(item.get("Name") or "")
        service_type, instance = classify_service(name)
        if service_type is ServiceType.UNKNOWN:
            continue
        records.append(
            ServiceRecord(
                computer_name=computer_name,
                service_name=name,
                service_type=service_type,
                instance_name=instance,
                state=_state_text(item.get("State")),
                display_name=str(item.get("DisplayName") or ""),
                start_mode=str(item.get("StartMode") or ""),
            )
        )
    return records


class ServiceProvider(Protocol):
    """Interface for anything that can list SQL services on a host."""

    def list_services(self, computer_name: str) -> Result[list[ServiceRecord], str]:
        """List SQL Server related services installed on ``computer_name``."""


class CimServiceProvider:
    """Win32_Service query through local PowerShell or WinRM."""

    def __init__(
        self,
        credential: Credential | None = None,
        winrm_port: int = 5985,
        transport: str = "ntlm",
        timeout_seconds: int = 30,
    ):
        self.credential = credential
        self.winrm_port = winrm_port
        self.transport = transport
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def is_localhost(computer_name: str) -> bool:
        """Matches localhost aliases and this machine's own name."""
        name = computer_name.lower().strip()
        if name in _LOCAL_NAMES:
            return True
        local_name = socket.gethostname().lower()
        return name in (local_name, local_name.split(".")[0])

    def _run_local(self, script: str) -> Result[str, str]:
        cmd = ["powershell", "-NoProfile", "-NonInteractive", "-Command", script]
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout_seconds, check=False
            )
        except (FileNotFoundError, PermissionError) as e:
            return Failure(f"PowerShell is not available: {e}")
        except subprocess.TimeoutExpired:
            return Failure(f"Local service query timed out after {self.timeout_seconds}s")

        if result.returncode != 0:
            return Failure(result.stderr.strip() or f"PowerShell exited with {result.returncode}")
        return Success(result.stdout)

    def _run_remote(self, computer_name: str, script: str) -> Result[str, str]:
        endpoint = f"http://{computer_name}:{self.winrm_port}/wsman"
        if self.credential:
            auth = (self.credential.username, self.credential.get_password())
            transport = self.transport
        else:
            auth = (None, None)
            transport = "kerberos"

        try:
            session = winrm.Session(
                target=endpoint,
                auth=auth,
                transport=transport,
                operation_timeout_sec=self.timeout_seconds,
                read_timeout_sec=self.timeout_seconds + 10,
            )
            result = session.run_ps(script)
        except Exception as e:  # pywinrm surfaces transport, auth and HTTP errors alike
            return Failure(f"WinRM query to {computer_name} failed: {type(e).__name__}: {e}")

        if result.status_code != 0:
            return Failure(result.std_err.decode("utf-8", errors="replace").strip()
                           or f"Remote PowerShell exited with {result.status_code}")
        return Success(result.std_out.decode("utf-8", errors="replace"))

    def list_services(self, computer_name: str) -> Result[list[ServiceRecord], str]:
        if self.is_localhost(computer_name):
            output = self._run_local(SERVICE_QUERY)
        else:
            output = self._run_remote(computer_name, SERVICE_QUERY)

        if isinstance(output, Failure):
            logger.debug("Service enumeration on %s failed: %s", computer_name, output.error)
            return output

        try:
            records = parse_service_json(output.value, computer_name)
        except (json.JSONDecodeError, AttributeError, TypeError) as e:
            return Failure(f"Unexpected service query output from {computer_name}: {e}")

        logger.debug("Found %d SQL service(s) on %s", len(records), computer_name)
        return Success(records)
