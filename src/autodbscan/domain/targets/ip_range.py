"""
IP range parser.

Expands the four accepted range forms into individual IPv4 addresses:

    10.0.0.5                  single address
    10.0.0.1-10.0.0.20        inclusive start-end
    10.0.0.0/24               CIDR prefix length
    10.0.0.0/255.255.255.0    dotted subnet mask

CIDR and mask forms cover the whole network, network and broadcast
addresses included.
"""

from __future__ import annotations

import ipaddress
from typing import Iterable

from autodbscan.domain.errors import InvalidIpRangeError
from autodbscan.domain.results import Failure, Result, Success

DEFAULT_MAX_RANGE_SIZE = 65536


def _parse_address(text: str) -> ipaddress.IPv4Address:
    return ipaddress.IPv4Address(text.strip())


def _network_from_mask(address: str, mask: str) -> ipaddress.IPv4Network:
    mask = mask.strip()
    if mask.isdigit():
        prefix = int(mask)
        if prefix < 0 or prefix > 32:
            raise ValueError(f"prefix length {prefix} is outside 0-32")
        return ipaddress.IPv4Network(f"{address.strip()}/{prefix}", strict=False)

    # IPv4Network also accepts host masks (0.0.0.255); only netmasks are valid here
    mask_value = int(_parse_address(mask))
    inverted = (~mask_value) & 0xFFFFFFFF
    if inverted & (inverted + 1):
        raise ValueError(f"subnet mask {mask} is not contiguous")
    prefix = 32 - inverted.bit_length()
    return ipaddress.IPv4Network(f"{address.strip()}/{prefix}", strict=False)


def parse_ip_range(text: str, max_size: int = DEFAULT_MAX_RANGE_SIZE) -> Result[list[ipaddress.IPv4Address], str]:
    """
    Parse one range specification.

    Returns:
        Success with the expanded addresses in ascending order, or Failure
        with a message describing why the string was rejected.
    """
    if not text or not text.strip():
        return Failure("empty range")

    spec = text.strip()
    try:
        if "/" in spec:
            address, _, mask = spec.partition("/")
            network = _network_from_mask(address, mask)
            first = network.network_address
            last = network.broadcast_address
        elif "-" in spec:
            start, _, end = spec.partition("-")
            first = _parse_address(start)
            last = _parse_address(end)
            if first > last:
                return Failure(f"start address {first} is greater than end address {last}")
        else:
            first = last = _parse_address(spec)
    except ValueError as e:
        return Failure(str(e))

    size = int(last) - int(first) + 1
    if size > max_size:
        return Failure(f"range expands to {size} addresses, limit is {max_size}")

    return Success([ipaddress.IPv4Address(value) for value in range(int(first), int(last) + 1)])


def expand_ip_ranges(ranges: Iterable[str], max_size: int = DEFAULT_MAX_RANGE_SIZE) -> list[str]:
    """
    Expand several range specifications, keeping first-seen order.

    Raises:
        InvalidIpRangeError: On the first string that does not parse.
    """
    addresses: dict[str, None] = {}
    for spec in ranges:
        result = parse_ip_range(spec, max_size=max_size)
        if isinstance(result, Failure):
            raise InvalidIpRangeError(spec, result.error)
        for address in result.value:
            addresses.setdefault(str(address))
    return list(addresses)


def local_subnet_range(address: str, prefix: int = 24) -> str:
    """CIDR string of the network around a local address."""
    network = ipaddress.IPv4Network(f"{address}/{prefix}", strict=False)
    return str(network)
