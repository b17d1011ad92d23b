class RedisKeys:
    """Centralised Redis key pattern definitions"""

    # Per-subject metric values
    DURABLE_METRIC = "post_metrics:durable:{metric}:{subject_id}"
    SHORT_LIVED_METRIC = "post_metrics:short_lived:{metric}:{subject_id}"

    # Sort projection (sorted set per metric, member = subject id)
    SORT_INDEX = "post_metrics:sort:{metric}"

    @classmethod
    def metric_key(cls, tier: str, metric: str, subject_id: int) -> str:
        """Generate value key for given cache tier."""
        patterns = {
            "durable": cls.DURABLE_METRIC,
            "short_lived": cls.SHORT_LIVED_METRIC,
        }
        pattern = patterns.get(tier)
        if not pattern:
            raise ValueError(f"Unknown cache tier: {tier}")
        return pattern.format(metric=metric, subject_id=subject_id)

    @classmethod
    def sort_key(cls, metric: str) -> str:
        """Generate sort projection key for given metric."""
        return cls.SORT_INDEX.format(metric=metric)
