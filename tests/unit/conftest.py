from datetime import date
from typing import Dict, List, Optional

import fakeredis.aioredis
import pytest

from post_metrics.domain.errors import TransportError
from post_metrics.domain.models import (
    AnalyticsConfig,
    RawResponse,
    ResolverOptions,
)
from post_metrics.services.resolver import MetricsResolver

TODAY = date(2024, 3, 31)


class FakePrimaryStore:
    """Primary store double with call counters."""

    def __init__(self, available: bool = True, metrics: Optional[dict] = None):
        self.available = available
        self.metrics = {"views": 0, "sessions": 0} if metrics is None else metrics
        self.probe_error: Optional[Exception] = None
        self.query_error: Optional[Exception] = None
        self.probe_calls = 0
        self.query_calls: List[tuple] = []

    async def tables_exist(self) -> bool:
        self.probe_calls += 1
        if self.probe_error is not None:
            raise self.probe_error
        return self.available

    async def get_post_metrics(self, subject_id, start_date, end_date):
        self.query_calls.append((subject_id, start_date, end_date))
        if self.query_error is not None:
            raise self.query_error
        return dict(self.metrics)


class FakeCache:
    """In-memory cache tier recording reads and writes."""

    def __init__(self, entries: Optional[Dict[tuple, int]] = None):
        self.entries: Dict[tuple, int] = dict(entries or {})
        self.ttls: Dict[tuple, Optional[int]] = {}
        self.reads: List[tuple] = []
        self.writes: List[tuple] = []

    async def get(self, key):
        self.reads.append(key)
        return self.entries.get(key)

    async def set(self, key, value, ttl_seconds=None):
        self.writes.append((key, value, ttl_seconds))
        self.entries[key] = value
        self.ttls[key] = ttl_seconds


class FakeProjection:
    def __init__(self):
        self.values: Dict[tuple, int] = {}
        self.writes: List[tuple] = []

    async def record(self, subject_id, metric, value):
        self.writes.append((subject_id, metric, value))
        self.values[(subject_id, metric)] = value

    async def ranked(self, metric, limit, descending=True):
        rows = [(s, v) for (s, m), v in self.values.items() if m == metric]
        rows.sort(key=lambda r: r[1], reverse=descending)
        return rows[:limit]


class FakeRemote:
    """Remote client double; answers chunks in order from `bodies`.

    Entries may be a JSON body string, a TransportError, or a callable
    returning either (sync or async) for finer control.
    """

    def __init__(self, bodies: Optional[list] = None):
        self.bodies = list(bodies or [])
        self.calls: List[tuple] = []

    async def fetch_chunk(self, config, page_path, metrics, chunk):
        index = len(self.calls)
        self.calls.append((config, page_path, tuple(metrics), chunk))
        body = self.bodies[index] if index < len(self.bodies) else '{"data": []}'
        if callable(body):
            body = body()
            if hasattr(body, "__await__"):
                body = await body
        if isinstance(body, TransportError):
            return body
        return RawResponse(chunk=chunk, status_code=200, body=body)


class StaticPagePaths:
    def __init__(self, path: Optional[str] = "/posts/hello-world/"):
        self.path = path

    def page_path(self, subject_id):
        return self.path


CONFIG = AnalyticsConfig(account_name="acme", property_id="prop-1", api_key="k-123")


@pytest.fixture
def primary():
    return FakePrimaryStore()


@pytest.fixture
def durable():
    return FakeCache()


@pytest.fixture
def short_lived():
    return FakeCache()


@pytest.fixture
def projection():
    return FakeProjection()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def make_resolver(primary, durable, short_lived, projection, remote, page_paths):
    def _make(**overrides) -> MetricsResolver:
        kwargs = dict(
            primary=primary,
            durable=durable,
            short_lived=short_lived,
            projection=projection,
            remote=remote,
            page_paths=page_paths,
            config=CONFIG,
            options=ResolverOptions(),
            clock=lambda: TODAY,
        )
        kwargs.update(overrides)
        return MetricsResolver(**kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def fake_redis():
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def analytics_config():
    return CONFIG


@pytest.fixture
def page_paths():
    return StaticPagePaths()
