"""
Tests for evidence aggregation and confidence scoring.
"""

import pytest

from conftest import browser_reply, engine_service, make_evidence

from autodbscan.application.aggregator import aggregate
from autodbscan.domain.models import Availability, Confidence, ServiceRecord, ServiceType


class TestNamedInstances:
    """Candidates built from instance name signals."""

    def test_service_and_browser_reply_make_high_available_candidate(self):
        evidence = make_evidence(
            "sql1",
            open_ports=[1433],
            replies=[browser_reply("sql1", "SQL1", port=1433)],
            services=[engine_service("sql1", "SQL1")],
        )

        candidates = aggregate(evidence)

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.instance_name == "SQL1"
        assert candidate.port == 1433
        assert candidate.confidence is Confidence.HIGH
        assert candidate.availability is Availability.AVAILABLE
        assert candidate.tcp_connected is True
        assert candidate.machine_name == "SQL1"

    def test_browser_reply_without_service_is_medium(self):
        evidence = make_evidence("sql1", replies=[browser_reply("sql1", "SALES", port=50123)])

        [candidate] = aggregate(evidence)

        assert candidate.confidence is Confidence.MEDIUM
        assert candidate.availability is Availability.UNKNOWN
        assert candidate.port == 50123
        assert candidate.tcp_connected is False

    def test_stopped_engine_is_unavailable(self):
        evidence = make_evidence("sql1", services=[engine_service("sql1", "SALES", state="Stopped")])

        [candidate] = aggregate(evidence)

        assert candidate.confidence is Confidence.HIGH
        assert candidate.availability is Availability.UNAVAILABLE
        assert candidate.port is None

    def test_instance_names_merge_case_insensitively(self):
        evidence = make_evidence(
            "sql1",
            replies=[browser_reply("sql1", "sales", port=50123)],
            services=[engine_service("sql1", "SALES")],
        )

        candidates = aggregate(evidence)

        assert len(candidates) == 1
        assert candidates[0].confidence is Confidence.HIGH
        assert candidates[0].browse_reply is not None

    def test_spn_instance_suffix_is_low(self):
        evidence = make_evidence("sql2", spns=["MSSQLsvc/sql2.dom.local:REPORTS"])

        [candidate] = aggregate(evidence)

        assert candidate.instance_name == "REPORTS"
        assert candidate.confidence is Confidence.LOW
        assert [spn.spn for spn in candidate.spns] == ["MSSQLsvc/sql2.dom.local:REPORTS"]

    def test_system_services_are_shared(self):
        browser_service = ServiceRecord(
            computer_name="sql1", service_name="SQLBrowser", service_type=ServiceType.BROWSER,
        )
        evidence = make_evidence("sql1", services=[engine_service("sql1", "SALES"), browser_service])

        [candidate] = aggregate(evidence)

        assert [s.service_name for s in candidate.services] == ["MSSQL$SALES"]
        assert [s.service_name for s in candidate.system_services] == ["SQLBrowser"]


class TestPortCandidates:
    """Candidates built from port signals."""

    def test_only_1433_open_is_medium(self):
        [candidate] = aggregate(make_evidence("sql1", open_ports=[1433]))

        assert candidate.instance_name is None
        assert candidate.port == 1433
        assert candidate.confidence is Confidence.MEDIUM
        assert candidate.tcp_connected is True

    @pytest.mark.parametrize("port", [1434, 2433, 5555, 50000])
    def test_other_single_open_port_is_low(self, port):
        [candidate] = aggregate(make_evidence("sql1", open_ports=[port]))

        assert candidate.confidence is Confidence.LOW

    def test_closed_ports_are_not_signals(self):
        assert aggregate(make_evidence("sql1", closed_ports=[1433, 5555])) == []

    def test_port_corroborated_by_spn_is_medium(self):
        evidence = make_evidence(
            "sql2.dom.local",
            open_ports=[5555],
            closed_ports=[1433],
            spns=["MSSQLsvc/sql2.dom.local:5555"],
        )

        [candidate] = aggregate(evidence)

        assert candidate.port == 5555
        assert candidate.confidence is Confidence.MEDIUM
        assert candidate.tcp_connected is True
        assert candidate.sql_connected is False
        assert len(candidate.spns) == 1

    def test_spn_port_without_open_port_is_still_a_signal(self):
        evidence = make_evidence("sql2", closed_ports=[1433], spns=["MSSQLsvc/sql2:5555"])

        [candidate] = aggregate(evidence)

        assert candidate.port == 5555
        assert candidate.confidence is Confidence.MEDIUM
        assert candidate.tcp_connected is False

    def test_port_reported_by_browser_is_not_duplicated(self):
        evidence = make_evidence(
            "sql1",
            open_ports=[1433, 50123],
            replies=[browser_reply("sql1", "SALES", port=50123)],
        )

        candidates = aggregate(evidence)

        assert [(c.instance_name, c.port) for c in candidates] == [("SALES", 50123), (None, 1433)]
        assert candidates[0].tcp_connected is True

    def test_default_instance_claims_1433(self):
        evidence = make_evidence(
            "sql1",
            open_ports=[1433],
            services=[engine_service("sql1", "MSSQLSERVER")],
        )

        [candidate] = aggregate(evidence)

        assert candidate.instance_name == "MSSQLSERVER"
        assert candidate.port == 1433
        assert candidate.tcp_connected is True
        assert candidate.sql_instance == "sql1"


class TestBareHosts:
    """Hosts that answered but showed no SQL Server evidence."""

    @pytest.mark.parametrize("ping,dns", [(True, False), (False, True)])
    def test_alive_host_emits_bare_candidate_at_none(self, ping, dns):
        evidence = make_evidence("10.0.0.5", closed_ports=[1433], ping=ping, dns=dns)

        [candidate] = aggregate(evidence, Confidence.NONE)

        assert candidate.instance_name is None
        assert candidate.port is None
        assert candidate.confidence is Confidence.NONE
        assert candidate.ping is ping

    @pytest.mark.parametrize("threshold", [Confidence.LOW, Confidence.MEDIUM, Confidence.HIGH])
    def test_alive_host_emits_nothing_above_none(self, threshold):
        evidence = make_evidence("10.0.0.5", closed_ports=[1433], ping=True)

        assert aggregate(evidence, threshold) == []

    def test_dead_host_emits_nothing(self):
        assert aggregate(make_evidence("10.0.0.6", closed_ports=[1433]), Confidence.NONE) == []


class TestConfidenceFilter:
    """Every emitted candidate meets the threshold."""

    @pytest.fixture
    def mixed_evidence(self):
        return make_evidence(
            "sql1",
            open_ports=[1433, 5555],
            replies=[browser_reply("sql1", "SALES", port=50123)],
            services=[engine_service("sql1", "HR")],
            spns=["MSSQLsvc/sql1:REPORTS"],
        )

    @pytest.mark.parametrize("threshold", list(Confidence))
    def test_filter_law(self, mixed_evidence, threshold):
        candidates = aggregate(mixed_evidence, threshold)

        assert all(c.confidence >= threshold for c in candidates)

    def test_levels_of_mixed_host(self, mixed_evidence):
        levels = {(c.instance_name, c.port): c.confidence for c in aggregate(mixed_evidence, Confidence.NONE)}

        assert levels == {
            ("HR", None): Confidence.HIGH,
            ("SALES", 50123): Confidence.MEDIUM,
            ("REPORTS", None): Confidence.LOW,
            (None, 1433): Confidence.MEDIUM,
            (None, 5555): Confidence.LOW,
        }

    def test_medium_threshold(self, mixed_evidence):
        names = [c.sql_instance for c in aggregate(mixed_evidence, Confidence.MEDIUM)]

        assert names == ["sql1\\HR", "sql1\\SALES", "sql1:1433"]

    def test_aggregation_is_idempotent(self, mixed_evidence):
        first = {c.key for c in aggregate(mixed_evidence)}
        second = {c.key for c in aggregate(mixed_evidence)}

        assert first == second
