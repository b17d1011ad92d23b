import pytest
from pydantic import ValidationError

from post_metrics.core.config import Settings
from post_metrics.domain.models import AnalyticsConfig


def test_defaults():
    s = Settings()
    assert s.metrics_window_days == 30
    assert s.metrics_chunk_span_days == 9
    assert s.short_lived_cache_ttl_seconds == 3600
    assert s.otel_service_name == "post_metrics"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ANALYTICS_ACCOUNT_NAME", " acme ")
    monkeypatch.setenv("ANALYTICS_PROPERTY_ID", "prop-1")
    monkeypatch.setenv("ANALYTICS_API_KEY", "k-123")
    monkeypatch.setenv("METRICS_CHUNK_SPAN_DAYS", "5")
    s = Settings()

    cfg = s.analytics_config()
    assert cfg == AnalyticsConfig(account_name="acme", property_id="prop-1", api_key="k-123")
    assert cfg.is_complete
    assert s.resolver_options().chunk_span_days == 5


def test_unconfigured_analytics_is_incomplete():
    assert not Settings().analytics_config().is_complete


@pytest.mark.parametrize(
    "account, prop, key",
    [("", "p", "k"), ("a", "", "k"), ("a", "p", "")],
)
def test_is_complete_requires_every_field(account, prop, key):
    assert not AnalyticsConfig(account_name=account, property_id=prop, api_key=key).is_complete


def test_api_key_not_in_repr():
    cfg = AnalyticsConfig(account_name="a", property_id="p", api_key="very-secret")
    assert "very-secret" not in repr(cfg)


def test_permalink_template_must_take_subject_id(monkeypatch):
    monkeypatch.setenv("SUBJECT_PERMALINK_TEMPLATE", "https://blog.example.com/{post_id}/")
    with pytest.raises(ValidationError):
        Settings()
