"""Tiered resolution of trailing-window views/sessions for a subject.

Tiers, consulted strictly in order:

1. Primary store. When its tables exist, its answer is final, zeros
   included, and no other tier is touched.
2. Durable side-store, only while the primary store is unavailable.
3. Short-lived cache (TTL), for metrics the durable tier did not have.
4. Remote analytics API, for whatever is still missing. Chunks are fetched
   concurrently and summed; a failed chunk contributes zero. The totals are
   written to both cache tiers.

Every value returned is also written to the sort projection. Writes happen
only after all reads and fetches for the call are complete, so a cancelled
resolution leaves no trace in any tier.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from post_metrics.core.logger import get_logger
from post_metrics.core.metrics import (
    CACHE_TIER_ERRORS_TOTAL,
    PRIMARY_QUERY_ERRORS_TOTAL,
    PRIMARY_UNAVAILABLE_TOTAL,
    REMOTE_CHUNK_FAILURES_TOTAL,
    REMOTE_FETCHES_SKIPPED_TOTAL,
    RESOLUTION_LATENCY_SECONDS,
    TIER_HITS_TOTAL,
)
from post_metrics.domain.errors import (
    InvalidRangeError,
    MetricsError,
    ParseError,
    StoreQueryError,
    StoreUnavailableError,
    TransportError,
)
from post_metrics.domain.models import (
    AnalyticsConfig,
    Chunk,
    MetricName,
    MetricSet,
    MetricValue,
    MetricWindow,
    RawResponse,
    ResolverOptions,
    Tier,
)
from post_metrics.domain.ports import MetricCache, PagePathResolver, PrimaryStore, SortIndex
from post_metrics.domain.results import Outcome
from post_metrics.infrastructure.analytics_api.client import RemoteAnalyticsClient
from post_metrics.metrics.aggregator import ResponseAggregator, Totals
from post_metrics.metrics.chunking import split_date_range, trailing_window
from shared.utils.concurrency import bounded_gather

logger = get_logger("post_metrics.resolver")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def _count(value: object) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


class MetricsResolver:
    def __init__(
        self,
        primary: PrimaryStore,
        durable: MetricCache,
        short_lived: MetricCache,
        projection: SortIndex,
        remote: RemoteAnalyticsClient,
        page_paths: PagePathResolver,
        config: AnalyticsConfig,
        options: ResolverOptions | None = None,
        metrics: Sequence[MetricName] = MetricName.all(),
        clock: Callable[[], date] = utc_today,
    ):
        self.primary = primary
        self.durable = durable
        self.short_lived = short_lived
        self.projection = projection
        self.remote = remote
        self.page_paths = page_paths
        self.config = config
        self.options = options or ResolverOptions()
        self.metrics = tuple(metrics)
        self.clock = clock

    def window(self, subject_id: int) -> MetricWindow:
        return trailing_window(subject_id, self.clock(), self.options.window_days)

    # Entry points
    async def resolve(self, subject_id: int) -> MetricSet:
        """Resolve metrics for one subject. Never raises except on cancellation."""
        with RESOLUTION_LATENCY_SECONDS.time():
            window = self.window(subject_id)
            availability = await self._probe_primary()
            if availability.ok:
                result = await self._resolve_from_primary(window)
                if result is not None:
                    return result
            PRIMARY_UNAVAILABLE_TOTAL.inc()
            logger.info(
                "primary_store_unavailable",
                extra={
                    "subject_id": subject_id,
                    "error": str(availability.error or "unavailable during query"),
                },
            )
            return await self._resolve_from_fallbacks(window)

    async def force_refresh(self, subject_id: int) -> MetricSet:
        """Re-read the primary store and overwrite the sort projection.

        Does nothing while the primary store is unavailable.
        """
        window = self.window(subject_id)
        availability = await self._probe_primary()
        if availability.ok:
            result = await self._resolve_from_primary(window)
            if result is not None:
                return result
        logger.info(
            "force_refresh_skipped",
            extra={"subject_id": subject_id, "reason": "primary_unavailable"},
        )
        return MetricSet(subject_id=subject_id)

    async def resolve_many(self, subject_ids: Iterable[int]) -> Dict[int, MetricSet]:
        """Resolve a listing page, at most max_concurrent_subjects at a time."""
        ids = list(dict.fromkeys(subject_ids))
        results = await bounded_gather(
            self.resolve, ids, self.options.max_concurrent_subjects
        )
        return dict(zip(ids, results))

    async def ranking(
        self, metric: MetricName, limit: int, descending: bool = True
    ) -> List[MetricValue]:
        """Subjects ordered by their last resolved value of `metric`."""
        try:
            rows = await self.projection.ranked(metric, limit, descending)
        except Exception as e:
            CACHE_TIER_ERRORS_TOTAL.labels(tier="sort_projection", op="read").inc()
            logger.warning("sort_projection_read_failed", extra={"error": str(e)})
            return []
        return [
            MetricValue(subject_id=subject_id, metric_name=metric, value=max(value, 0))
            for subject_id, value in rows
        ]

    # Tier 1: primary store
    async def _probe_primary(self) -> Outcome[bool]:
        try:
            exists = await self.primary.tables_exist()
        except Exception as e:
            return Outcome.failure(StoreUnavailableError(f"availability probe failed: {e}"))
        if not exists:
            return Outcome.failure(StoreUnavailableError("primary store tables missing"))
        return Outcome.success(True)

    async def _query_primary(self, window: MetricWindow) -> Outcome[Totals]:
        try:
            raw: Mapping[str, int] = await self.primary.get_post_metrics(
                window.subject_id, window.start_date, window.end_date
            )
        except MetricsError as e:
            return Outcome.failure(e)
        except Exception as e:
            return Outcome.failure(StoreQueryError(str(e)))

        values: Totals = {}
        for metric in self.metrics:
            count = _count(raw.get(metric.value))
            if count is not None:
                values[metric] = count
        return Outcome.success(values)

    async def _resolve_from_primary(self, window: MetricWindow) -> Optional[MetricSet]:
        """Final answer from the primary store, or None if it reported itself
        unavailable while being queried."""
        outcome = await self._query_primary(window)
        if isinstance(outcome.error, StoreUnavailableError):
            return None
        if not outcome.ok:
            PRIMARY_QUERY_ERRORS_TOTAL.inc()
            logger.warning(
                "primary_store_query_failed",
                extra={"subject_id": window.subject_id, "error": str(outcome.error)},
            )
            return MetricSet(subject_id=window.subject_id)

        values = outcome.value or {}
        result = MetricSet(
            subject_id=window.subject_id,
            values=values,
            sources={m: Tier.PRIMARY for m in values},
        )
        await self._project(result)
        return result

    # Tiers 2-4: fallbacks
    async def _resolve_from_fallbacks(self, window: MetricWindow) -> MetricSet:
        subject_id = window.subject_id
        values: Totals = {}
        sources: Dict[MetricName, Tier] = {}

        for tier, cache in (
            (Tier.DURABLE, self.durable),
            (Tier.SHORT_LIVED, self.short_lived),
        ):
            for metric in self.metrics:
                if metric in values:
                    continue
                cached = await self._read_cache(tier, cache, subject_id, metric)
                if cached is not None:
                    values[metric] = cached
                    sources[metric] = tier

        missing = MetricSet(subject_id=subject_id, values=values).missing(self.metrics)
        fetched: Totals = {}
        if missing:
            outcome = await self._fetch_remote(window, missing)
            if outcome.ok:
                fetched = {m: (outcome.value or {}).get(m, 0) for m in missing}
            else:
                logger.warning(
                    "remote_fetch_produced_nothing",
                    extra={
                        "subject_id": subject_id,
                        "metrics": [m.value for m in missing],
                        "error": str(outcome.error),
                    },
                )

        # Nothing is written until every read and fetch above has finished.
        if fetched:
            await self._write_caches(subject_id, fetched)
        values.update(fetched)
        sources.update({m: Tier.REMOTE for m in fetched})

        result = MetricSet(subject_id=subject_id, values=values, sources=sources)
        await self._project(result)
        return result

    async def _read_cache(
        self, tier: Tier, cache: MetricCache, subject_id: int, metric: MetricName
    ) -> Optional[int]:
        try:
            return await cache.get((subject_id, metric))
        except Exception as e:
            CACHE_TIER_ERRORS_TOTAL.labels(tier=tier.value, op="read").inc()
            logger.warning(
                "cache_read_failed",
                extra={"tier": tier.value, "subject_id": subject_id, "error": str(e)},
            )
            return None

    async def _write_caches(self, subject_id: int, values: Totals) -> None:
        targets = (
            (Tier.DURABLE, self.durable, None),
            (Tier.SHORT_LIVED, self.short_lived, self.options.short_lived_ttl_seconds),
        )
        for tier, cache, ttl in targets:
            for metric, value in values.items():
                try:
                    await cache.set((subject_id, metric), value, ttl)
                except Exception as e:
                    CACHE_TIER_ERRORS_TOTAL.labels(tier=tier.value, op="write").inc()
                    logger.warning(
                        "cache_write_failed",
                        extra={
                            "tier": tier.value,
                            "subject_id": subject_id,
                            "error": str(e),
                        },
                    )

    async def _fetch_remote(
        self, window: MetricWindow, metrics: List[MetricName]
    ) -> Outcome[Totals]:
        if not self.config.is_complete:
            REMOTE_FETCHES_SKIPPED_TOTAL.labels(reason="missing_credentials").inc()
            return Outcome.failure(MetricsError("analytics API credentials incomplete"))
        try:
            page_path = self.page_paths.page_path(window.subject_id)
        except Exception as e:
            REMOTE_FETCHES_SKIPPED_TOTAL.labels(reason="page_path_error").inc()
            return Outcome.failure(MetricsError(f"page path lookup failed: {e!r}"))
        if not page_path:
            REMOTE_FETCHES_SKIPPED_TOTAL.labels(reason="no_page_path").inc()
            return Outcome.failure(MetricsError("no page path for subject"))

        aggregator = ResponseAggregator(metrics)
        if window.is_empty:
            return Outcome.success(aggregator.empty())

        try:
            chunks = split_date_range(
                window.start_date, window.end_date, self.options.chunk_span_days
            )
        except InvalidRangeError as e:
            return Outcome.failure(e)

        async def _fetch(chunk: Chunk) -> RawResponse | TransportError:
            try:
                return await self.remote.fetch_chunk(
                    self.config, page_path, metrics, chunk
                )
            except Exception as e:
                return TransportError(f"unexpected client failure for {chunk}: {e!r}")

        results = await bounded_gather(
            _fetch, chunks, self.options.max_concurrent_chunks
        )
        responses = [r for r in results if isinstance(r, RawResponse)]
        totals, parse_failures = aggregator.aggregate(responses)

        failures: List[TransportError | ParseError] = [
            r for r in results if isinstance(r, TransportError)
        ]
        failures.extend(parse_failures)
        for failure in failures:
            REMOTE_CHUNK_FAILURES_TOTAL.labels(kind=failure.kind).inc()
            logger.warning(
                "remote_chunk_failed",
                extra={"subject_id": window.subject_id, "error": str(failure)},
            )

        return Outcome.success(totals)

    # Sort projection
    async def _project(self, result: MetricSet) -> None:
        for metric, value in result.values.items():
            TIER_HITS_TOTAL.labels(tier=result.sources[metric].value).inc()
            try:
                await self.projection.record(result.subject_id, metric, value)
            except Exception as e:
                CACHE_TIER_ERRORS_TOTAL.labels(tier="sort_projection", op="write").inc()
                logger.warning(
                    "sort_projection_write_failed",
                    extra={"subject_id": result.subject_id, "error": str(e)},
                )
