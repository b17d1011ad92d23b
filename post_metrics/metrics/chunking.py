from datetime import date, timedelta
from typing import List

from post_metrics.domain.errors import InvalidRangeError
from post_metrics.domain.models import Chunk, MetricWindow

MAX_CHUNK_SPAN_DAYS = 9


def split_date_range(
    start_date: date, end_date: date, max_span_days: int = MAX_CHUNK_SPAN_DAYS
) -> List[Chunk]:
    """Split [start_date, end_date) into consecutive chunks of at most
    max_span_days days.

    Each chunk starts where the previous one ended (ends are exclusive), so
    the chunks tile the range with no gaps or overlaps. A zero-length range
    comes back as a single zero-length chunk; skipping it is up to the caller.
    """
    if max_span_days <= 0:
        raise InvalidRangeError(f"max_span_days must be positive, got {max_span_days}")
    if start_date > end_date:
        raise InvalidRangeError(f"start_date {start_date} is after end_date {end_date}")

    if (end_date - start_date).days <= max_span_days:
        return [Chunk(start_date=start_date, end_date=end_date)]

    span = timedelta(days=max_span_days)
    chunks = []
    cursor = start_date
    while cursor < end_date:
        chunk_end = min(cursor + span, end_date)
        chunks.append(Chunk(start_date=cursor, end_date=chunk_end))
        cursor = chunk_end
    return chunks


def trailing_window(subject_id: int, today: date, days: int) -> MetricWindow:
    return MetricWindow(
        subject_id=subject_id,
        start_date=today - timedelta(days=days),
        end_date=today,
    )
