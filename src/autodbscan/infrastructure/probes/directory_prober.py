"""
Active Directory prober (LDAP via ldap3).

Two searches are supported:
- MSSQLsvc service principal names, optionally for one computer
- enabled computer objects running a Windows Server operating system

Searches are paged (200 entries per page) and never retried. Every failure
is raised as DirectoryLookupError; the caller decides whether it is fatal.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Optional

from ldap3 import ALL, KERBEROS, NTLM, SASL, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from autodbscan.domain.config import LDAP_PAGE_SIZE, Credential
from autodbscan.domain.errors import DirectoryLookupError
from autodbscan.domain.models import SpnRecord

logger = logging.getLogger(__name__)

SPN_FILTER = "(servicePrincipalName=MSSQLsvc*)"
WINDOWS_SERVER_FILTER = (
    "(&(objectCategory=computer)"
    "(operatingSystem=*windows*server*)"
    "(!(userAccountControl:1.2.840.113556.1.4.803:=2)))"
)


def domain_to_base_dn(domain: str) -> str:
    """``corp.example.com`` -> ``DC=corp,DC=example,DC=com``."""
    return ",".join(f"DC={part}" for part in domain.strip(".").split(".") if part)


def _ntlm_user(username: str) -> str:
    """ldap3 NTLM needs DOMAIN\\user; convert user@domain form."""
    if "\\" in username or "@" not in username:
        return username
    user, _, domain = username.partition("@")
    return f"{domain.split('.')[0].upper()}\\{user}"


def _first(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else None
    return str(value) if value else None


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def _same_host(spn_host: str, computer_name: str) -> bool:
    """``sql1`` matches ``sql1`` and ``sql1.dom.local`` but not ``sql10``."""
    spn_host = spn_host.lower().rstrip(".")
    computer_name = computer_name.lower().rstrip(".")
    return spn_host == computer_name or spn_host.startswith(computer_name + ".")


class DirectoryProber:
    """LDAP searches against Active Directory."""

    def __init__(
        self,
        domain_controller: str | None = None,
        credential: Credential | None = None,
        domain: str | None = None,
    ):
        """
        Args:
            domain_controller: Explicit directory server (host name or address)
            credential: Bind identity; None binds with the current Kerberos ticket
            domain: DNS domain; defaults to the USERDNSDOMAIN environment variable
        """
        self.domain_controller = domain_controller
        self.credential = credential
        self.domain = domain or os.environ.get("USERDNSDOMAIN") or None

    def _connect(self) -> Connection:
        host = self.domain_controller or self.domain
        if not host:
            raise DirectoryLookupError(
                "No domain controller given and no DNS domain found (USERDNSDOMAIN is not set)"
            )

        server = Server(host, get_info=ALL)
        if self.credential:
            logger.debug("Binding to %s as %s (NTLM)", host, self.credential.username)
            return Connection(
                server,
                user=_ntlm_user(self.credential.username),
                password=self.credential.get_password(),
                authentication=NTLM,
                auto_bind=True,
            )

        logger.debug("Binding to %s with Kerberos", host)
        return Connection(server, authentication=SASL, sasl_mechanism=KERBEROS, auto_bind=True)

    def _search_base(self, conn: Connection) -> str:
        if self.domain:
            return domain_to_base_dn(self.domain)
        info = getattr(conn.server, "info", None)
        naming_context = _first(info.other.get("defaultNamingContext")) if info else None
        if not naming_context:
            raise DirectoryLookupError("Could not determine the directory search base")
        return naming_context

    def search(self, search_filter: str, attributes: Iterable[str]) -> list[dict[str, Any]]:
        """
        Run a paged subtree search.

        Returns:
            The ``attributes`` mapping of every result entry

        Raises:
            DirectoryLookupError: On bind or search failure
        """
        try:
            conn = self._connect()
        except LDAPException as e:
            raise DirectoryLookupError(f"Directory bind failed: {e}") from e

        try:
            base = self._search_base(conn)
            logger.debug("LDAP search base=%s filter=%s", base, search_filter)
            entries = conn.extend.standard.paged_search(
                search_base=base,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=list(attributes),
                paged_size=LDAP_PAGE_SIZE,
                generator=False,
            )
            return [
                dict(entry.get("attributes", {}))
                for entry in entries or []
                if entry.get("type") == "searchResEntry"
            ]
        except LDAPException as e:
            raise DirectoryLookupError(f"Directory search failed: {e}") from e
        finally:
            conn.unbind()

    def find_spns(self, computer_name: str | None = None) -> list[SpnRecord]:
        """
        MSSQLsvc SPNs registered in the directory.

        Args:
            computer_name: Only SPNs for this host (short name or FQDN)
        """
        search_filter = SPN_FILTER
        if computer_name:
            search_filter = f"(servicePrincipalName=MSSQLsvc/{escape_filter_chars(computer_name)}*)"

        records: list[SpnRecord] = []
        seen: set[str] = set()
        for attributes in self.search(search_filter, ["servicePrincipalName", "sAMAccountName"]):
            account = _first(attributes.get("sAMAccountName"))
            for value in _as_list(attributes.get("servicePrincipalName")):
                record = SpnRecord.parse(value, account=account)
                if record is None or value.lower() in seen:
                    continue
                if computer_name and not _same_host(record.host, computer_name):
                    continue
                seen.add(value.lower())
                records.append(record)

        logger.debug("Found %d MSSQLsvc SPN(s)%s", len(records), f" for {computer_name}" if computer_name else "")
        return records

    def find_windows_servers(self) -> list[str]:
        """DNS host names (or names) of enabled Windows Server computer objects."""
        hosts: list[str] = []
        for attributes in self.search(WINDOWS_SERVER_FILTER, ["dNSHostName", "name"]):
            host = _first(attributes.get("dNSHostName")) or _first(attributes.get("name"))
            if host and host not in hosts:
                hosts.append(host)
        logger.info("Directory returned %d Windows Server computer(s)", len(hosts))
        return hosts
