from datetime import date
from enum import Enum
from typing import Annotated, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

NonNegativeInt = Annotated[int, Field(ge=0)]


class MetricName(str, Enum):
    """Metrics resolved per subject."""

    VIEWS = "views"
    SESSIONS = "sessions"

    @classmethod
    def all(cls) -> tuple["MetricName", ...]:
        return (cls.VIEWS, cls.SESSIONS)


class Tier(str, Enum):
    """Data sources, in the order they are consulted."""

    PRIMARY = "primary"
    DURABLE = "durable"
    SHORT_LIVED = "short_lived"
    REMOTE = "remote"


class AnalyticsConfig(BaseModel):
    """Credentials and identifiers for the remote analytics API."""

    model_config = ConfigDict(frozen=True)

    account_name: str = ""
    property_id: str = ""
    api_key: str = Field(default="", repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.account_name and self.property_id and self.api_key)


class ResolverOptions(BaseModel):
    """Numeric knobs for the resolver, independent of any settings source."""

    model_config = ConfigDict(frozen=True)

    window_days: int = Field(default=30, ge=0)
    chunk_span_days: int = Field(default=9, gt=0)
    short_lived_ttl_seconds: int = Field(default=3600, gt=0)
    max_concurrent_chunks: int = Field(default=4, gt=0)
    max_concurrent_subjects: int = Field(default=8, gt=0)


class MetricWindow(BaseModel):
    """Trailing window ending today (UTC). Recomputed on every resolution."""

    model_config = ConfigDict(frozen=True)

    subject_id: int
    start_date: date
    end_date: date

    @property
    def is_empty(self) -> bool:
        return self.start_date >= self.end_date


class Chunk(BaseModel):
    """Half-open date range [start_date, end_date) sent as one remote request."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days


class MetricValue(BaseModel):
    subject_id: int
    metric_name: MetricName
    value: NonNegativeInt


class MetricSet(BaseModel):
    """Resolved metrics for one subject and one window.

    Partial sets are valid: a metric that no tier could produce is simply
    absent, never negative.
    """

    subject_id: int
    values: Dict[MetricName, NonNegativeInt] = Field(default_factory=dict)
    sources: Dict[MetricName, Tier] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _sources_match_values(self) -> "MetricSet":
        unknown = set(self.sources) - set(self.values)
        if unknown:
            raise ValueError(f"sources given for unresolved metrics: {unknown}")
        return self

    def get(self, metric: MetricName) -> Optional[MetricValue]:
        if metric not in self.values:
            return None
        return MetricValue(
            subject_id=self.subject_id, metric_name=metric, value=self.values[metric]
        )

    def value_or_zero(self, metric: MetricName) -> int:
        return self.values.get(metric, 0)

    @property
    def is_empty(self) -> bool:
        return not self.values

    def missing(self, metrics: tuple[MetricName, ...]) -> list[MetricName]:
        return [m for m in metrics if m not in self.values]


class RawResponse(BaseModel):
    """Undecoded body of a successful (2xx) chunk request."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    status_code: int
    body: str
