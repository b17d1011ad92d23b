"""Shared utilities and components for all services."""

from .config import BaseLoggingConfig, BaseRedisConfig, BaseServiceConfig
from .constants import RedisKeys

__all__ = [
    "RedisKeys",
    "BaseServiceConfig",
    "BaseLoggingConfig",
    "BaseRedisConfig",
]
