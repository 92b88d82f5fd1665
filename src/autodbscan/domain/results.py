"""
Railway-oriented result types.

Expected per-item failures (a range string that does not parse, a SQL
endpoint that refuses the login, a host without WinRM) are returned as
``Failure`` values instead of being raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar('T')
E = TypeVar('E')


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful operation result."""
    value: T


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Failed operation result."""
    error: E


# Type alias for Railway Result
Result = Success[T] | Failure[E]
