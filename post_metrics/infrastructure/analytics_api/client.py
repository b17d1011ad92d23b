"""HTTP client for the remote traffic API (one request per date chunk)."""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence
from urllib.parse import quote

import httpx

from post_metrics.domain.errors import TransportError
from post_metrics.domain.models import AnalyticsConfig, Chunk, MetricName, RawResponse

DEFAULT_BASE_URL_TEMPLATE = "https://{account}.example-analytics.com/api/v1/traffic/"
DEFAULT_TIMEOUT_SECONDS = 10.0

# A 9-day chunk of daily rows for one page fits in a single page.
PAGE_SIZE = 1000
PAGE_NUMBER = 1


def build_request_payload(
    property_id: str,
    page_path: str,
    metrics: Sequence[MetricName],
    chunk: Chunk,
) -> Dict[str, Any]:
    return {
        "filters": {
            "date": {
                "gte": chunk.start_date.isoformat(),
                "lt": chunk.end_date.isoformat(),
            },
            "propertyId": {"in": [property_id]},
            "pagePath": {"eq": page_path},
        },
        "granularity": "daily",
        "metrics": [m.value for m in metrics],
        "dimensions": ["date", "pagePath"],
        "orderBy": {"date": "asc"},
        "pagination": {"pageSize": PAGE_SIZE, "pageNumber": PAGE_NUMBER},
    }


def build_request_url(base_url: str, payload: Dict[str, Any]) -> str:
    encoded = quote(json.dumps(payload, separators=(",", ":")), safe="")
    return f"{base_url}?data={encoded}"


def build_headers(config: AnalyticsConfig) -> Dict[str, str]:
    return {"X-API-KEY": config.api_key, "Accept": "application/json"}


class RemoteAnalyticsClient:
    """Issues chunk requests; failures come back as TransportError values.

    The underlying httpx.AsyncClient is owned by the caller (application
    lifespan or test), which also decides its transport.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url_template: str = DEFAULT_BASE_URL_TEMPLATE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.http = http
        self.base_url_template = base_url_template
        self.timeout = httpx.Timeout(timeout_seconds)

    def base_url(self, account_name: str) -> str:
        return self.base_url_template.format(account=account_name)

    async def fetch_chunk(
        self,
        config: AnalyticsConfig,
        page_path: str,
        metrics: Sequence[MetricName],
        chunk: Chunk,
    ) -> RawResponse | TransportError:
        payload = build_request_payload(config.property_id, page_path, metrics, chunk)
        url = build_request_url(self.base_url(config.account_name), payload)
        try:
            resp = await self.http.get(
                url, headers=build_headers(config), timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            return TransportError(f"timeout fetching chunk {chunk}: {e!r}")
        except httpx.HTTPError as e:
            return TransportError(f"request failed for chunk {chunk}: {e!r}")

        if not resp.is_success:
            return TransportError(
                f"unexpected status {resp.status_code} for chunk {chunk}",
                status_code=resp.status_code,
            )
        return RawResponse(chunk=chunk, status_code=resp.status_code, body=resp.text)
