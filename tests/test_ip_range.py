"""
Tests for IP range parsing and expansion.
"""

import pytest

from autodbscan.domain.errors import InvalidIpRangeError
from autodbscan.domain.results import Failure, Success
from autodbscan.domain.targets import expand_ip_ranges, local_subnet_range, parse_ip_range


class TestParseIpRange:
    """Each accepted specification form."""

    def test_single_address(self):
        result = parse_ip_range("10.0.0.5")
        assert isinstance(result, Success)
        assert [str(a) for a in result.value] == ["10.0.0.5"]

    def test_cidr_includes_network_and_broadcast(self):
        result = parse_ip_range("10.1.1.1/30")
        assert isinstance(result, Success)
        assert [str(a) for a in result.value] == ["10.1.1.0", "10.1.1.1", "10.1.1.2", "10.1.1.3"]

    def test_dotted_mask_matches_cidr(self):
        by_mask = parse_ip_range("192.168.5.77/255.255.255.0")
        by_prefix = parse_ip_range("192.168.5.77/24")
        assert by_mask.value == by_prefix.value
        assert len(by_mask.value) == 256
        assert str(by_mask.value[0]) == "192.168.5.0"
        assert str(by_mask.value[-1]) == "192.168.5.255"

    def test_start_end_range_is_inclusive(self):
        result = parse_ip_range("10.0.0.254-10.0.1.1")
        assert [str(a) for a in result.value] == ["10.0.0.254", "10.0.0.255", "10.0.1.0", "10.0.1.1"]

    def test_slash_32_is_single_host(self):
        assert [str(a) for a in parse_ip_range("10.9.9.9/32").value] == ["10.9.9.9"]

    @pytest.mark.parametrize("spec", [
        "",
        "10.0.0",
        "300.1.1.1",
        "10.0.0.1/33",
        "10.0.0.1/255.0.255.0",
        "10.0.0.1/0.0.0.255",
        "10.0.0.9-10.0.0.1",
        "host.example.com",
    ])
    def test_invalid_specs_fail(self, spec):
        result = parse_ip_range(spec)
        assert isinstance(result, Failure)
        assert result.error

    def test_range_size_limit(self):
        result = parse_ip_range("10.0.0.0/8", max_size=65536)
        assert isinstance(result, Failure)
        assert "limit" in result.error


class TestExpandIpRanges:
    """Expansion of several specifications."""

    def test_overlapping_ranges_are_deduplicated_in_order(self):
        addresses = expand_ip_ranges(["10.0.0.2-10.0.0.3", "10.0.0.0/30"])
        assert addresses == ["10.0.0.2", "10.0.0.3", "10.0.0.0", "10.0.0.1"]

    def test_invalid_range_raises_with_input_named(self):
        with pytest.raises(InvalidIpRangeError) as exc_info:
            expand_ip_ranges(["10.0.0.0/30", "10.0.0.1/40"])
        assert exc_info.value.ip_range == "10.0.0.1/40"
        assert "10.0.0.1/40" in str(exc_info.value)

    def test_invalid_range_is_a_value_error(self):
        with pytest.raises(ValueError):
            expand_ip_ranges(["nonsense"])


def test_local_subnet_range():
    assert local_subnet_range("192.168.10.42") == "192.168.10.0/24"
    assert local_subnet_range("172.16.3.9", prefix=16) == "172.16.0.0/16"
