from fastapi import Request

from post_metrics.services.resolver import MetricsResolver


def get_resolver(request: Request) -> MetricsResolver:
    return request.app.state.resolver  # type: ignore[return-value]
