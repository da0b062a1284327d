# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Reporter configuration with defaults and provider-based loading."""

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .models import PLATFORMS, ErrorPlatform
from .providers import ConfigProvider, EnvConfigProvider

if TYPE_CHECKING:
    from .context import ContextResolver

DEFAULT_ENDPOINT = "/api/errors"
DEFAULT_PLATFORM = ErrorPlatform.WEB.value
DEFAULT_ENVIRONMENT = "production"

MAX_BREADCRUMBS = 100
MAX_MESSAGE_LENGTH = 8192
MAX_STACK_LENGTH = 65536
CLIENT_QUEUE_MAX_SIZE = 50
CLIENT_FLUSH_INTERVAL_MS = 5000
CLIENT_RETRY_MAX = 3
CLIENT_RETRY_DELAY_MS = 1000
CLIENT_RATE_LIMIT_PER_FINGERPRINT = 5
CLIENT_RATE_LIMIT_WINDOW_MS = 60_000
CLIENT_REQUEST_TIMEOUT_SECONDS = 10.0

_POSITIVE_INT_FIELDS = (
    "max_queue_size",
    "flush_interval_ms",
    "max_breadcrumbs",
    "rate_limit_per_fingerprint",
    "rate_limit_window_ms",
    "retry_max_attempts",
    "max_message_length",
    "max_stack_length",
)


@dataclass(frozen=True)
class ReporterConfig:
    """Resolved configuration for an ErrorReporter.

    Attributes:
        endpoint: URL of the error ingestion API
        platform: Platform identifier sent with every report
        environment: Deployment environment name
        release: Application release/version ("" means not sent)
        enabled: When False every reporter call is a no-op
        max_queue_size: Queue length that triggers an immediate flush
        flush_interval_ms: Period of the background flush
        fetch_fn: Optional ``requests.post``-compatible callable
        context_resolver: Optional resolver for user id and URL
        get_user_id: Optional zero-argument callable returning the user id
        get_url: Optional zero-argument callable returning the current URL
        default_tags: Tags applied to every reported error
        debug: Emit debug log lines describing reporter activity
    """

    endpoint: str = DEFAULT_ENDPOINT
    platform: str = DEFAULT_PLATFORM
    environment: str = DEFAULT_ENVIRONMENT
    release: str = ""
    enabled: bool = True
    max_queue_size: int = CLIENT_QUEUE_MAX_SIZE
    flush_interval_ms: int = CLIENT_FLUSH_INTERVAL_MS
    fetch_fn: Callable[..., Any] | None = None
    context_resolver: "ContextResolver | None" = None
    get_user_id: Callable[[], str | None] | None = None
    get_url: Callable[[], str | None] | None = None
    default_tags: dict[str, str] = field(default_factory=dict)
    debug: bool = False

    max_breadcrumbs: int = MAX_BREADCRUMBS
    rate_limit_per_fingerprint: int = CLIENT_RATE_LIMIT_PER_FINGERPRINT
    rate_limit_window_ms: int = CLIENT_RATE_LIMIT_WINDOW_MS
    retry_max_attempts: int = CLIENT_RETRY_MAX
    retry_base_delay_ms: int = CLIENT_RETRY_DELAY_MS
    request_timeout_seconds: float = CLIENT_REQUEST_TIMEOUT_SECONDS
    max_message_length: int = MAX_MESSAGE_LENGTH
    max_stack_length: int = MAX_STACK_LENGTH

    def __post_init__(self) -> None:
        for name in _POSITIVE_INT_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.retry_base_delay_ms < 0:
            raise ValueError("retry_base_delay_ms must not be negative")
        if self.request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be positive")
        # Own a copy so later mutation of the caller's dict has no effect
        object.__setattr__(self, "default_tags", dict(self.default_tags))

    def merged(self, **overrides: Any) -> "ReporterConfig":
        """Return a copy with *overrides* applied.

        Raises:
            TypeError: If an override names an unknown field
        """
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_provider(cls, provider: ConfigProvider, **overrides: Any) -> "ReporterConfig":
        """Build a config from a ConfigProvider.

        Settings are read by name under the provider's prefix (``ENDPOINT``
        is ``ERROR_TRACKING_ENDPOINT`` by default). Missing or malformed
        values fall back to the documented defaults; *overrides* win over
        both.
        """
        values: dict[str, Any] = {
            "endpoint": provider.get_str("ENDPOINT", DEFAULT_ENDPOINT),
            "platform": provider.get_choice("PLATFORM", PLATFORMS, DEFAULT_PLATFORM),
            "environment": provider.get_str("ENVIRONMENT", DEFAULT_ENVIRONMENT),
            "release": provider.get_str("RELEASE", ""),
            "enabled": provider.get_bool("ENABLED", True),
            "max_queue_size": provider.get_positive_int("MAX_QUEUE_SIZE", CLIENT_QUEUE_MAX_SIZE),
            "flush_interval_ms": provider.get_positive_int("FLUSH_INTERVAL_MS", CLIENT_FLUSH_INTERVAL_MS),
            "max_breadcrumbs": provider.get_positive_int("MAX_BREADCRUMBS", MAX_BREADCRUMBS),
            "debug": provider.get_bool("DEBUG", False),
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ReporterConfig":
        """Build a config from ``ERROR_TRACKING_*`` environment variables."""
        return cls.from_provider(EnvConfigProvider(), **overrides)
