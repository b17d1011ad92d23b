from typing import List, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from post_metrics.domain.errors import CacheTierError
from post_metrics.domain.models import MetricName
from post_metrics.domain.ports import CacheKey
from shared.constants import RedisKeys


def _to_count(raw: Optional[str]) -> Optional[int]:
    """Stored value as a non-negative int; anything else reads as absent."""
    if raw is None:
        return None
    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None
    return value if value >= 0 else None


class RedisMetricCache:
    """One cache tier: a plain string key per (subject, metric).

    Notes:
        - The durable tier writes without expiry.
        - The short-lived tier writes with SET EX; Redis drops expired keys,
          so an expired entry reads back as absent.
    """

    def __init__(self, redis: Redis, tier: str):
        self.r = redis
        self.tier = tier

    def _key(self, key: CacheKey) -> str:
        subject_id, metric = key
        return RedisKeys.metric_key(self.tier, MetricName(metric).value, subject_id)

    async def get(self, key: CacheKey) -> Optional[int]:
        try:
            raw = await self.r.get(self._key(key))
        except RedisError as e:
            raise CacheTierError(f"{self.tier} read failed: {e}") from e
        return _to_count(raw)

    async def set(
        self, key: CacheKey, value: int, ttl_seconds: Optional[int] = None
    ) -> None:
        try:
            await self.r.set(self._key(key), int(value), ex=ttl_seconds)
        except RedisError as e:
            raise CacheTierError(f"{self.tier} write failed: {e}") from e


class RedisSortProjection:
    """Latest resolved value per subject, one sorted set per metric.

    Members are subject ids and scores the values, so a listing sorted by a
    metric is a single range read. Last writer wins.
    """

    def __init__(self, redis: Redis):
        self.r = redis

    async def record(self, subject_id: int, metric: MetricName, value: int) -> None:
        try:
            await self.r.zadd(RedisKeys.sort_key(metric.value), {str(subject_id): value})
        except RedisError as e:
            raise CacheTierError(f"sort projection write failed: {e}") from e

    async def ranked(
        self, metric: MetricName, limit: int, descending: bool = True
    ) -> List[Tuple[int, int]]:
        if limit <= 0:
            return []
        key = RedisKeys.sort_key(metric.value)
        try:
            if descending:
                rows = await self.r.zrevrange(key, 0, limit - 1, withscores=True)
            else:
                rows = await self.r.zrange(key, 0, limit - 1, withscores=True)
        except RedisError as e:
            raise CacheTierError(f"sort projection read failed: {e}") from e
        return [(int(member), int(score)) for member, score in rows]
