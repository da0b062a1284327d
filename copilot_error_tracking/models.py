# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Data model for error reports, breadcrumbs and capture extras."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorLevel(str, Enum):
    """Severity of a captured error or breadcrumb."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ErrorPlatform(str, Enum):
    """Platform the reporting client runs on."""

    WEB = "web"
    MOBILE_IOS = "mobile_ios"
    MOBILE_ANDROID = "mobile_android"
    SERVER = "server"


LEVELS = tuple(level.value for level in ErrorLevel)
PLATFORMS = tuple(platform.value for platform in ErrorPlatform)


def coerce_level(value: Any, default: str) -> str:
    """Return a valid level string for *value*, or *default* when unknown."""
    if isinstance(value, ErrorLevel):
        return value.value
    if isinstance(value, str) and value.lower() in LEVELS:
        return value.lower()
    return default


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class ErrorBreadcrumb:
    """A timestamped note describing an event leading up to an error."""

    message: str
    category: str = "custom"
    level: str = ErrorLevel.INFO.value
    data: dict[str, Any] | None = None
    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "timestamp": self.timestamp,
            "category": self.category,
            "message": self.message,
            "level": self.level,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class CaptureExtras:
    """Optional context supplied by the caller at capture time."""

    component: str | None = None
    action: str | None = None
    tags: dict[str, str] | None = None
    context: dict[str, Any] | None = None
    level: str | None = None
    fingerprint: str | None = None


@dataclass
class ErrorReportPayload:
    """Unit of work on the send queue and on the wire.

    The payload is built once at capture time and is not modified after it
    has been enqueued. ``breadcrumbs`` is a snapshot of the trail taken at
    capture time.
    """

    message: str
    platform: str
    environment: str
    level: str = ErrorLevel.ERROR.value
    stack_trace: str | None = None
    release: str | None = None
    user_id: str | None = None
    url: str | None = None
    component: str | None = None
    action: str | None = None
    breadcrumbs: tuple[ErrorBreadcrumb, ...] = ()
    context: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, str] = field(default_factory=dict)
    fingerprint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape accepted by the ingestion endpoint.

        Optional fields that are ``None`` are left out entirely.
        """
        result: dict[str, Any] = {
            "message": self.message,
            "stackTrace": self.stack_trace,
            "level": self.level,
            "platform": self.platform,
            "environment": self.environment,
            "release": self.release,
            "userId": self.user_id,
            "url": self.url,
            "component": self.component,
            "action": self.action,
            "breadcrumbs": [crumb.to_dict() for crumb in self.breadcrumbs],
            "context": self.context,
            "tags": self.tags,
            "fingerprint": self.fingerprint,
        }
        return {key: value for key, value in result.items() if value is not None}
