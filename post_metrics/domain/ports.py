"""Collaborator interfaces the resolver is constructed with."""

from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Tuple

from .models import MetricName

CacheKey = Tuple[int, MetricName]


class PrimaryStore(Protocol):
    async def tables_exist(self) -> bool: ...

    async def get_post_metrics(
        self, subject_id: int, start_date: date, end_date: date
    ) -> Mapping[str, int]: ...


class MetricCache(Protocol):
    """Key-value tier keyed by (subject_id, metric).

    Expired entries read as absent; `ttl_seconds=None` means no expiry.
    """

    async def get(self, key: CacheKey) -> Optional[int]: ...

    async def set(
        self, key: CacheKey, value: int, ttl_seconds: Optional[int] = None
    ) -> None: ...


class SortIndex(Protocol):
    async def record(self, subject_id: int, metric: MetricName, value: int) -> None: ...

    async def ranked(
        self, metric: MetricName, limit: int, descending: bool = True
    ) -> list[tuple[int, int]]: ...


class PagePathResolver(Protocol):
    def page_path(self, subject_id: int) -> Optional[str]: ...
