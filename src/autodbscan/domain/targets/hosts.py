"""Host identity normalization for the orchestrator's seen-set."""


def normalize_host(computer_name: str) -> str:
    """
    Normalize a host name or address for duplicate detection.

    ``SQL01``, ``sql01`` and ``sql01.`` are the same host. FQDN and short
    names are kept apart since the short name may belong to another domain.
    """
    return computer_name.strip().lower().rstrip(".")
