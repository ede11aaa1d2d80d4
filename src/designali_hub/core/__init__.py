"""Core Designali Hub utilities.

This module exports core utilities for use throughout the package.
"""

from designali_hub.core.config import Settings, get_settings
from designali_hub.core.logging import (
    LoggingContext,
    bind_session_context,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "bind_session_context",
    "clear_context",
]
