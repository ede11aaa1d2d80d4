"""Transient user-visible notifications."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ToastLevel(str, Enum):
    """Severity of a toast."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Toast:
    """A short message shown to the user after an intent or remote event."""

    level: ToastLevel
    message: str
    collection: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
