from pydantic import field_validator

from post_metrics.domain.models import AnalyticsConfig, ResolverOptions
from shared.config import BaseServiceConfig


class Settings(BaseServiceConfig):
    # ClickHouse (primary store)
    clickhouse_host: str = "clickhouse"
    clickhouse_port: int = 8123
    clickhouse_db: str = "analytics"
    clickhouse_user: str = "admin"
    clickhouse_password: str = "admin"

    # Remote analytics API
    analytics_account_name: str = ""
    analytics_property_id: str = ""
    analytics_api_key: str = ""
    analytics_base_url_template: str = (
        "https://{account}.example-analytics.com/api/v1/traffic/"
    )
    analytics_request_timeout_seconds: float = 10.0

    # Window / chunking
    metrics_window_days: int = 30
    metrics_chunk_span_days: int = 9  # remote API span limit

    # Cache tiers
    short_lived_cache_ttl_seconds: int = 3600

    # Bounded pools
    remote_max_concurrent_chunks: int = 4
    resolver_max_concurrent_subjects: int = 8

    # Subjects
    subject_permalink_template: str = "https://example.com/posts/{subject_id}/"

    otel_service_name: str = "post_metrics"

    @field_validator("subject_permalink_template")
    @classmethod
    def _template_takes_subject_id(cls, v: str) -> str:
        try:
            v.format(subject_id=1)
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"permalink template must only use {{subject_id}}: {e!r}"
            ) from e
        return v

    def analytics_config(self) -> AnalyticsConfig:
        return AnalyticsConfig(
            account_name=self.analytics_account_name.strip(),
            property_id=self.analytics_property_id.strip(),
            api_key=self.analytics_api_key.strip(),
        )

    def resolver_options(self) -> ResolverOptions:
        return ResolverOptions(
            window_days=self.metrics_window_days,
            chunk_span_days=self.metrics_chunk_span_days,
            short_lived_ttl_seconds=self.short_lived_cache_ttl_seconds,
            max_concurrent_chunks=self.remote_max_concurrent_chunks,
            max_concurrent_subjects=self.resolver_max_concurrent_subjects,
        )


settings = Settings()
