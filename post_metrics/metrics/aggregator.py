import json
import math
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from post_metrics.domain.errors import ParseError
from post_metrics.domain.models import MetricName, RawResponse

Totals = Dict[MetricName, int]


def _as_count(value: Any) -> int:
    """Numeric contribution of one field; anything unusable counts as zero."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(number) or number < 0:
        return 0
    return int(number)


class ResponseAggregator:
    """Turns chunk responses into per-metric totals for the whole window."""

    def __init__(self, metrics: Sequence[MetricName]):
        self.metrics = tuple(metrics)

    def empty(self) -> Totals:
        return {m: 0 for m in self.metrics}

    def parse(self, response: RawResponse) -> Totals:
        """Sum one chunk's daily entries.

        Expected shape: {"data": [{"date": ..., "views": n, "sessions": n}, ...]}
        Raises ParseError when the body is not JSON or has no data array.
        """
        try:
            body = json.loads(response.body)
        except (TypeError, ValueError) as e:
            raise ParseError(f"invalid JSON for chunk {response.chunk}: {e}") from e
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            raise ParseError(f"missing data array for chunk {response.chunk}")

        totals = self.empty()
        for entry in body["data"]:
            if not isinstance(entry, dict):
                continue
            for metric in self.metrics:
                totals[metric] += _as_count(entry.get(metric.value))
        return totals

    def merge(self, parts: Iterable[Totals]) -> Totals:
        merged = self.empty()
        for part in parts:
            for metric in self.metrics:
                merged[metric] += part.get(metric, 0)
        return merged

    def aggregate(
        self, responses: Iterable[RawResponse]
    ) -> Tuple[Totals, List[ParseError]]:
        """Merge all responses; unparseable ones contribute zero and are
        returned alongside the totals."""
        parts: List[Totals] = []
        failures: List[ParseError] = []
        for response in responses:
            try:
                parts.append(self.parse(response))
            except ParseError as e:
                failures.append(e)
        return self.merge(parts), failures
