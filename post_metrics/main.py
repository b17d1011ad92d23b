import asyncio
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from post_metrics import __version__
from post_metrics.api.router import api_router
from post_metrics.core.config import settings
from post_metrics.core.logger import configure_logging, get_logger
from post_metrics.infrastructure.analytics_api.client import RemoteAnalyticsClient
from post_metrics.infrastructure.clickhouse.client import ClickHousePrimaryStore
from post_metrics.infrastructure.redis.repository import (
    RedisMetricCache,
    RedisSortProjection,
)
from post_metrics.services.page_paths import PermalinkPagePaths
from post_metrics.services.resolver import MetricsResolver
from shared.utils.concurrency import run_blocking
from shared.utils.retry import retry_async

# Configure logging once and get service logger
configure_logging()
logger = get_logger("post_metrics.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("post_metrics_service_starting")
    app.state.ready_event = asyncio.Event()
    app.state.redis = await _init_redis_with_retry()
    app.state.primary = await run_blocking(
        ClickHousePrimaryStore.connect,
        settings.clickhouse_host,
        settings.clickhouse_port,
        settings.clickhouse_db,
        settings.clickhouse_user,
        settings.clickhouse_password,
    )
    app.state.http = httpx.AsyncClient()
    app.state.resolver = build_resolver(
        app.state.redis, app.state.primary, app.state.http
    )
    if not settings.analytics_config().is_complete:
        logger.warning("analytics_api_not_configured")
    app.state.ready_event.set()
    try:
        yield
    finally:
        logger.info("post_metrics_service_stopping")
        app.state.ready_event.clear()
        await app.state.http.aclose()
        await run_blocking(app.state.primary.close)
        await app.state.redis.aclose()


def build_resolver(
    redis_client: redis.Redis,
    primary: ClickHousePrimaryStore,
    http: httpx.AsyncClient,
) -> MetricsResolver:
    return MetricsResolver(
        primary=primary,
        durable=RedisMetricCache(redis_client, "durable"),
        short_lived=RedisMetricCache(redis_client, "short_lived"),
        projection=RedisSortProjection(redis_client),
        remote=RemoteAnalyticsClient(
            http,
            base_url_template=settings.analytics_base_url_template,
            timeout_seconds=settings.analytics_request_timeout_seconds,
        ),
        page_paths=PermalinkPagePaths(settings.subject_permalink_template),
        config=settings.analytics_config(),
        options=settings.resolver_options(),
    )


app = FastAPI(title="Post Metrics Resolver", version=__version__, lifespan=lifespan)
app.include_router(api_router)


async def _init_redis_with_retry():
    async def _connect():
        r = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,
        )
        await r.ping()
        return r

    async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
        logger.warning(
            "redis_connect_retry",
            extra={
                "attempt": attempt,
                "error": str(exc),
                "sleep_for": round(sleep_for, 2),
            },
        )

    r = await retry_async(
        _connect,
        retries=6,
        base_delay=0.5,
        max_delay=8.0,
        jitter=0.2,
        on_retry=_on_retry,
    )
    logger.info("redis_connected")
    return r


@app.get("/metrics")
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
