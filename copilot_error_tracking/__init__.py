# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Copilot-for-Consensus Error Tracking Client.

A fire-and-forget error reporter that runs inside a host process. Captured
errors are fingerprinted, rate limited per fingerprint, queued in memory and
shipped to the error ingestion API in batches, with retries and exponential
backoff. No call into the reporter ever raises.

Example:
    >>> from copilot_error_tracking import ErrorReporter, ReporterConfig
    >>> reporter = ErrorReporter()
    >>> reporter.init(ReporterConfig(endpoint="https://example.com/api/errors", platform="server"))
    >>> reporter.add_breadcrumb("Loaded settings", category="startup")
    >>> reporter.capture_message("Cache miss storm", level="warning")
    >>> reporter.destroy()
"""

__version__ = "0.1.0"

from .breadcrumbs import BreadcrumbTrail
from .config import ReporterConfig
from .context import CallbackContextResolver, ContextResolver, NullContextResolver
from .fingerprint import compute_fingerprint, extract_frames, normalize_message, simple_hash
from .integrations import (
    BreadcrumbHandler,
    asyncio_exception_handler,
    capture_exceptions,
    install_global_handlers,
)
from .models import (
    CaptureExtras,
    ErrorBreadcrumb,
    ErrorLevel,
    ErrorPlatform,
    ErrorReportPayload,
)
from .providers import ConfigProvider, EnvConfigProvider, StaticConfigProvider
from .rate_limiter import RateLimiter
from .reporter import ErrorReporter, error_reporter, normalize_error
from .retry_policy import RetryConfig, RetryPolicy
from .safety import never_raise
from .transport import (
    ConsoleTransport,
    HttpTransport,
    SilentTransport,
    Transport,
    create_transport,
)

__all__ = [
    # Version
    "__version__",
    # Reporter
    "ErrorReporter",
    "error_reporter",
    "normalize_error",
    # Configuration
    "ReporterConfig",
    "ConfigProvider",
    "EnvConfigProvider",
    "StaticConfigProvider",
    "ContextResolver",
    "CallbackContextResolver",
    "NullContextResolver",
    # Models
    "CaptureExtras",
    "ErrorBreadcrumb",
    "ErrorLevel",
    "ErrorPlatform",
    "ErrorReportPayload",
    # Building blocks
    "BreadcrumbTrail",
    "RateLimiter",
    "RetryConfig",
    "RetryPolicy",
    "compute_fingerprint",
    "extract_frames",
    "normalize_message",
    "simple_hash",
    "never_raise",
    # Transports
    "Transport",
    "HttpTransport",
    "SilentTransport",
    "ConsoleTransport",
    "create_transport",
    # Integrations
    "BreadcrumbHandler",
    "asyncio_exception_handler",
    "capture_exceptions",
    "install_global_handlers",
]
