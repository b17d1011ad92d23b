"""Error taxonomy for metrics resolution.

None of these reach callers of the resolver; each is recovered at the tier
that produced it and logged at the orchestration boundary.
"""

from __future__ import annotations

from typing import Optional


class MetricsError(Exception):
    """Base class for all resolution errors."""


class InvalidRangeError(MetricsError, ValueError):
    """Chunker misuse: start after end, or a non-positive span."""


class TransportError(MetricsError):
    """A remote chunk request failed (network, timeout, non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def kind(self) -> str:
        return "http_status" if self.status_code is not None else "network"


class ParseError(MetricsError):
    """A remote response body could not be interpreted."""

    kind = "parse"


class StoreUnavailableError(MetricsError):
    """The primary store is not provisioned (its tables are missing)."""


class StoreQueryError(MetricsError):
    """The primary store is available but a query failed."""


class CacheTierError(MetricsError):
    """A cache tier or the sort projection could not be read or written."""
