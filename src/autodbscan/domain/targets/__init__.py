"""Target host parsing and normalization."""

from .hosts import normalize_host
from .ip_range import expand_ip_ranges, local_subnet_range, parse_ip_range

__all__ = ["expand_ip_ranges", "local_subnet_range", "normalize_host", "parse_ip_range"]
