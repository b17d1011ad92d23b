import json
from datetime import date

import httpx
import pytest

from post_metrics.domain.errors import TransportError
from post_metrics.domain.models import AnalyticsConfig, Chunk, MetricName, RawResponse
from post_metrics.infrastructure.analytics_api.client import (
    RemoteAnalyticsClient,
    build_request_payload,
)

CONFIG = AnalyticsConfig(account_name="acme", property_id="prop-1", api_key="k-123")
CHUNK = Chunk(start_date=date(2024, 3, 1), end_date=date(2024, 3, 10))
METRICS = [MetricName.VIEWS, MetricName.SESSIONS]


def _client(handler) -> RemoteAnalyticsClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteAnalyticsClient(http)


def test_payload_shape():
    payload = build_request_payload("prop-1", "/posts/a/", METRICS, CHUNK)
    assert payload == {
        "filters": {
            "date": {"gte": "2024-03-01", "lt": "2024-03-10"},
            "propertyId": {"in": ["prop-1"]},
            "pagePath": {"eq": "/posts/a/"},
        },
        "granularity": "daily",
        "metrics": ["views", "sessions"],
        "dimensions": ["date", "pagePath"],
        "orderBy": {"date": "asc"},
        "pagination": {"pageSize": 1000, "pageNumber": 1},
    }


@pytest.mark.asyncio
async def test_fetch_chunk_builds_request():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": [{"views": 1}]})

    result = await _client(handler).fetch_chunk(CONFIG, "/posts/a/", METRICS, CHUNK)

    assert isinstance(result, RawResponse)
    assert json.loads(result.body) == {"data": [{"views": 1}]}
    request = seen[0]
    assert request.method == "GET"
    assert request.url.host == "acme.example-analytics.com"
    assert request.url.path == "/api/v1/traffic/"
    assert request.headers["X-API-KEY"] == "k-123"
    assert request.headers["Accept"] == "application/json"
    data = json.loads(request.url.params["data"])
    assert data == build_request_payload("prop-1", "/posts/a/", METRICS, CHUNK)
    # the key travels only in the header
    assert "k-123" not in str(request.url)
    assert request.content == b""


@pytest.mark.asyncio
async def test_custom_base_url_template():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": []})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = RemoteAnalyticsClient(http, base_url_template="http://{account}.local/t/")
    await client.fetch_chunk(CONFIG, "/p/", METRICS, CHUNK)

    assert seen[0].url.host == "acme.local"
    assert seen[0].url.path == "/t/"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
async def test_non_2xx_is_transport_error(status):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="nope")

    result = await _client(handler).fetch_chunk(CONFIG, "/p/", METRICS, CHUNK)

    assert isinstance(result, TransportError)
    assert result.status_code == status
    assert result.kind == "http_status"


@pytest.mark.asyncio
async def test_network_failure_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await _client(handler).fetch_chunk(CONFIG, "/p/", METRICS, CHUNK)

    assert isinstance(result, TransportError)
    assert result.kind == "network"


@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    result = await _client(handler).fetch_chunk(CONFIG, "/p/", METRICS, CHUNK)

    assert isinstance(result, TransportError)
    assert "timeout" in str(result)


@pytest.mark.asyncio
async def test_malformed_body_is_returned_raw():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    result = await _client(handler).fetch_chunk(CONFIG, "/p/", METRICS, CHUNK)

    assert isinstance(result, RawResponse)
    assert result.body == "<html>oops</html>"
