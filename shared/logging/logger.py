"""Shared logger utility for all services.

Hands out named loggers and falls back to a plain text configuration when
nothing has installed the JSON handler yet (scripts, ad-hoc shells).
"""

from __future__ import annotations

import logging

_configured = False


def get_logger(name: str, auto_configure: bool = True) -> logging.Logger:
    """Get a named logger, configuring a minimal fallback on first use.

    Args:
        name: Logger name (usually module name)
        auto_configure: Whether to install the fallback configuration

    Returns:
        Logger instance
    """
    global _configured

    if auto_configure and not _configured:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        _configured = True

    return logging.getLogger(name)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def mark_configured():
    """Mark logging as configured (called by shared.logging.json.configure_logging)."""
    global _configured
    _configured = True
