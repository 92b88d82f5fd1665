"""
Tests for SSRP response parsing and the SQL Browser prober.
"""

import socket
import struct
from unittest.mock import patch

import pytest

from autodbscan.domain.errors import BrowserProbeError
from autodbscan.infrastructure.probes import BrowserProber, parse_ssrp_response
from autodbscan.infrastructure.probes.browser_prober import CLNT_BCAST_EX, CLNT_UCAST_EX


SOCKET = "autodbscan.infrastructure.probes.browser_prober.socket.socket"

TWO_INSTANCES = (
    "ServerName;SQL1;InstanceName;MSSQLSERVER;IsClustered;No;Version;15.0.2000.5;tcp;1433;np;\\\\SQL1\\pipe\\sql\\query;;"
    "ServerName;SQL1;InstanceName;SALES;IsClustered;Yes;Version;16.0.1000.6;np;\\\\SQL1\\pipe\\MSSQL$SALES\\sql\\query;;"
)


def ssrp_datagram(text: str) -> bytes:
    body = text.encode("ascii")
    return b"\x05" + struct.pack("<H", len(body)) + body


class TestParseSsrpResponse:

    def test_parses_every_record(self):
        replies = parse_ssrp_response(TWO_INSTANCES, "sql1.dom.local")

        assert [r.instance_name for r in replies] == ["MSSQLSERVER", "SALES"]
        assert all(r.computer_name == "sql1.dom.local" for r in replies)
        assert replies[0].machine_name == "SQL1"

    def test_tcp_port_belongs_to_its_own_record(self):
        default, sales = parse_ssrp_response(TWO_INSTANCES, "sql1")

        assert default.tcp_port == 1433
        assert sales.tcp_port is None

    def test_clustered_and_version(self):
        default, sales = parse_ssrp_response(TWO_INSTANCES, "sql1")

        assert default.is_clustered is False
        assert sales.is_clustered is True
        assert sales.version == "16.0.1000.6"

    def test_sql_instance_naming(self):
        default, sales = parse_ssrp_response(TWO_INSTANCES, "sql1")

        assert default.sql_instance == "sql1"
        assert sales.sql_instance == "sql1\\SALES"

    def test_garbage_yields_nothing(self):
        assert parse_ssrp_response("not a browser response", "sql1") == []


class TestBrowserProber:

    @patch(SOCKET)
    def test_probe_sends_unicast_request(self, mock_socket):
        sock = mock_socket.return_value.__enter__.return_value
        sock.recvfrom.return_value = (ssrp_datagram(TWO_INSTANCES), ("10.0.0.1", 1434))

        replies = BrowserProber(timeout=1.5).probe("sql1")

        sock.settimeout.assert_called_once_with(1.5)
        sock.sendto.assert_called_once_with(CLNT_UCAST_EX, ("sql1", 1434))
        assert [r.instance_name for r in replies] == ["MSSQLSERVER", "SALES"]

    @patch(SOCKET)
    def test_timeout_yields_no_replies(self, mock_socket):
        sock = mock_socket.return_value.__enter__.return_value
        sock.recvfrom.side_effect = socket.timeout("timed out")

        assert BrowserProber().probe("sql1") == []

    @patch(SOCKET)
    def test_errors_raised_on_request(self, mock_socket):
        sock = mock_socket.return_value.__enter__.return_value
        sock.recvfrom.side_effect = ConnectionResetError("port unreachable")

        with pytest.raises(BrowserProbeError, match="sql1:1434"):
            BrowserProber().probe("sql1", raise_errors=True)

    @patch(SOCKET)
    def test_broadcast_collects_until_timeout(self, mock_socket):
        sock = mock_socket.return_value.__enter__.return_value
        sock.recvfrom.side_effect = [
            (ssrp_datagram("ServerName;SQL1;InstanceName;MSSQLSERVER;IsClustered;No;Version;15.0.2000.5;tcp;1433;;"),
             ("10.0.0.1", 1434)),
            (ssrp_datagram("ServerName;SQL2;InstanceName;SALES;IsClustered;No;Version;16.0.1000.6;tcp;50123;;"),
             ("10.0.0.2", 1434)),
            socket.timeout("done"),
        ]

        replies = BrowserProber().broadcast(timeout=5.0)

        sock.sendto.assert_called_once_with(CLNT_BCAST_EX, ("255.255.255.255", 1434))
        assert [(r.machine_name, r.computer_name, r.tcp_port) for r in replies] == [
            ("SQL1", "10.0.0.1", 1433),
            ("SQL2", "10.0.0.2", 50123),
        ]

    @patch(SOCKET)
    def test_broadcast_send_failure_raises(self, mock_socket):
        sock = mock_socket.return_value.__enter__.return_value
        sock.sendto.side_effect = PermissionError("broadcast not permitted")

        with pytest.raises(BrowserProbeError):
            BrowserProber().broadcast(timeout=1.0)
