"""
Tests for Active Directory SPN and server lookups.
"""

from unittest.mock import patch

import pytest
from ldap3.core.exceptions import LDAPException, LDAPSocketOpenError

from autodbscan.domain.config import Credential
from autodbscan.domain.errors import DirectoryLookupError
from autodbscan.infrastructure.probes import DirectoryProber
from autodbscan.infrastructure.probes.directory_prober import (
    NTLM,
    SPN_FILTER,
    WINDOWS_SERVER_FILTER,
    domain_to_base_dn,
)


MODULE = "autodbscan.infrastructure.probes.directory_prober"


def entry(**attributes):
    return {"type": "searchResEntry", "dn": "CN=x,DC=dom,DC=local", "attributes": attributes}


@pytest.fixture
def mock_ldap():
    with patch(f"{MODULE}.Server") as mock_server, patch(f"{MODULE}.Connection") as mock_connection:
        yield mock_server, mock_connection


def paged_search(mock_connection):
    return mock_connection.return_value.extend.standard.paged_search


def test_domain_to_base_dn():
    assert domain_to_base_dn("dom.local") == "DC=dom,DC=local"
    assert domain_to_base_dn("corp.example.com.") == "DC=corp,DC=example,DC=com"


class TestFindSpns:

    def test_all_sql_spns(self, mock_ldap):
        _, mock_connection = mock_ldap
        paged_search(mock_connection).return_value = [
            entry(servicePrincipalName=["MSSQLsvc/sql1.dom.local:1433", "MSSQLsvc/sql1.dom.local", "HTTP/sql1"],
                  sAMAccountName="svc_sql1"),
            entry(servicePrincipalName="MSSQLsvc/sql2.dom.local:SALES", sAMAccountName=["SQL2$"]),
            {"type": "searchResRef", "uri": ["ldap://other.dom.local/DC=other"]},
        ]

        records = DirectoryProber(domain="dom.local").find_spns()

        assert [(r.host, r.port, r.instance_name) for r in records] == [
            ("sql1.dom.local", 1433, None),
            ("sql1.dom.local", None, None),
            ("sql2.dom.local", None, "SALES"),
        ]
        assert records[0].account == "svc_sql1"
        assert records[2].account == "SQL2$"

        kwargs = paged_search(mock_connection).call_args.kwargs
        assert kwargs["search_filter"] == SPN_FILTER
        assert kwargs["search_base"] == "DC=dom,DC=local"
        assert kwargs["paged_size"] == 200

    def test_host_filter_excludes_similar_names(self, mock_ldap):
        _, mock_connection = mock_ldap
        paged_search(mock_connection).return_value = [
            entry(servicePrincipalName=["MSSQLsvc/sql1.dom.local:1433"]),
            entry(servicePrincipalName=["MSSQLsvc/sql10.dom.local:1433"]),
        ]

        records = DirectoryProber(domain="dom.local").find_spns("sql1")

        assert [r.host for r in records] == ["sql1.dom.local"]
        assert paged_search(mock_connection).call_args.kwargs["search_filter"] == (
            "(servicePrincipalName=MSSQLsvc/sql1*)"
        )

    def test_duplicate_spns_reported_once(self, mock_ldap):
        _, mock_connection = mock_ldap
        paged_search(mock_connection).return_value = [
            entry(servicePrincipalName=["MSSQLsvc/sql1.dom.local:1433"]),
            entry(servicePrincipalName=["MSSQLSvc/SQL1.dom.local:1433"]),
        ]

        assert len(DirectoryProber(domain="dom.local").find_spns()) == 1


class TestFindWindowsServers:

    def test_prefers_dns_host_name(self, mock_ldap):
        _, mock_connection = mock_ldap
        paged_search(mock_connection).return_value = [
            entry(dNSHostName="app1.dom.local", name="APP1"),
            entry(dNSHostName=[], name="LEGACY"),
            entry(dNSHostName="app1.dom.local", name="APP1"),
        ]

        hosts = DirectoryProber(domain="dom.local").find_windows_servers()

        assert hosts == ["app1.dom.local", "LEGACY"]
        assert paged_search(mock_connection).call_args.kwargs["search_filter"] == WINDOWS_SERVER_FILTER


class TestBindAndErrors:

    def test_credential_binds_with_ntlm(self, mock_ldap):
        mock_server, mock_connection = mock_ldap
        paged_search(mock_connection).return_value = []
        credential = Credential(username="scan@dom.local", password="pw")

        DirectoryProber(domain_controller="dc01", credential=credential, domain="dom.local").find_spns()

        mock_server.assert_called_once()
        assert mock_server.call_args.args[0] == "dc01"
        kwargs = mock_connection.call_args.kwargs
        assert kwargs["user"] == "DOM\\scan"
        assert kwargs["password"] == "pw"
        assert kwargs["authentication"] == NTLM

    def test_bind_failure_raises_lookup_error(self, mock_ldap):
        _, mock_connection = mock_ldap
        mock_connection.side_effect = LDAPSocketOpenError("unable to open socket")

        with pytest.raises(DirectoryLookupError, match="bind failed"):
            DirectoryProber(domain="dom.local").find_spns()

    def test_search_failure_raises_and_unbinds(self, mock_ldap):
        _, mock_connection = mock_ldap
        paged_search(mock_connection).side_effect = LDAPException("size limit")

        with pytest.raises(DirectoryLookupError, match="search failed"):
            DirectoryProber(domain="dom.local").find_windows_servers()

        mock_connection.return_value.unbind.assert_called_once()

    def test_no_domain_raises(self, mock_ldap, monkeypatch):
        monkeypatch.delenv("USERDNSDOMAIN", raising=False)
        _, mock_connection = mock_ldap

        with pytest.raises(DirectoryLookupError, match="USERDNSDOMAIN"):
            DirectoryProber().find_spns()

        mock_connection.assert_not_called()

    def test_search_base_from_root_dse(self, mock_ldap, monkeypatch):
        monkeypatch.delenv("USERDNSDOMAIN", raising=False)
        _, mock_connection = mock_ldap
        conn = mock_connection.return_value
        conn.server.info.other = {"defaultNamingContext": ["DC=corp,DC=local"]}
        paged_search(mock_connection).return_value = []

        DirectoryProber(domain_controller="dc01").find_spns()

        assert paged_search(mock_connection).call_args.kwargs["search_base"] == "DC=corp,DC=local"
