# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Fire-and-forget error reporter.

Safe to call from anywhere: no public method raises, and capture calls never
wait on the network.

Pipeline: capture -> normalise -> fingerprint -> rate-limit check -> queue ->
periodic or size-triggered flush -> batched HTTP POST with retries.

Example:
    >>> from copilot_error_tracking import ErrorReporter, ReporterConfig
    >>> reporter = ErrorReporter()
    >>> reporter.init(ReporterConfig(endpoint="https://example.com/api/errors", platform="server"))
    >>> try:
    ...     risky()
    ... except Exception as exc:
    ...     reporter.capture_error(exc, component="billing", action="charge")
    >>> reporter.destroy()
"""

import json
import logging
import threading
import time
import traceback
from collections.abc import Callable, Mapping
from typing import Any

from .breadcrumbs import BreadcrumbTrail
from .config import ReporterConfig
from .context import CallbackContextResolver, ContextResolver, NullContextResolver
from .fingerprint import compute_fingerprint
from .models import (
    CaptureExtras,
    ErrorBreadcrumb,
    ErrorLevel,
    ErrorReportPayload,
    coerce_level,
)
from .rate_limiter import RateLimiter
from .retry_policy import RetryConfig, RetryPolicy
from .safety import never_raise
from .transport import HttpTransport, Transport

logger = logging.getLogger(__name__)

FLUSH_THREAD_NAME = "error-tracking-flush"


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return f"<unprintable {type(value).__name__}>"


def _safe_field(error: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or attribute, ignoring failures."""
    try:
        if isinstance(error, Mapping):
            return error.get(name)
        return getattr(error, name, None)
    except Exception:
        return None


def _json_or_repr(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        pass
    try:
        return repr(value)
    except Exception:
        return object.__repr__(value)


def normalize_error(error: Any) -> tuple[str, str | None]:
    """Reduce any thrown or passed value to ``(message, stack_trace)``.

    - Exceptions: ``str(exc)`` (or the type name when empty) and the
      formatted traceback if the exception was raised
    - Strings: the string itself, no stack
    - Mappings and other objects: their ``message``/``stack`` key or
      attribute, with a JSON (or repr) rendering as the message fallback
    - ``None``, numbers and booleans: ``str(value)``
    """
    if isinstance(error, BaseException):
        message = _safe_str(error) or type(error).__name__
        stack = None
        if error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return message, stack

    if isinstance(error, str):
        return error, None

    if error is None or isinstance(error, (int, float, bool)):
        return _safe_str(error), None

    message = _safe_field(error, "message")
    stack = _safe_field(error, "stack")
    message_text = _json_or_repr(error) if message is None else _safe_str(message)
    return message_text, (_safe_str(stack) if stack else None)


class FlushWorker(threading.Thread):
    """Background thread that flushes on a timer or on request.

    A single worker runs per initialized reporter. Stopping it wakes the
    thread immediately; with ``final_flush`` it runs one last flush before
    exiting.
    """

    def __init__(
        self,
        flush: Callable[[], None],
        interval_seconds: float,
        on_tick: Callable[[], None] | None = None,
    ):
        super().__init__(name=FLUSH_THREAD_NAME, daemon=True)
        self._flush = flush
        self._interval_seconds = interval_seconds
        self._on_tick = on_tick
        self._wake = threading.Event()
        self._stop_event = threading.Event()
        self._final_flush = False
        self._on_exit: Callable[[], None] | None = None

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def request_flush(self) -> None:
        self._wake.set()

    def stop(self, final_flush: bool = False, on_exit: Callable[[], None] | None = None) -> None:
        self._final_flush = final_flush
        self._on_exit = on_exit
        self._stop_event.set()
        self._wake.set()

    def run(self) -> None:
        while True:
            self._wake.wait(self._interval_seconds)
            self._wake.clear()
            if self._stop_event.is_set():
                break
            if self._on_tick is not None:
                self._on_tick()
            self._flush()

        if self._final_flush:
            self._flush()
        if self._on_exit is not None:
            try:
                self._on_exit()
            except Exception:
                logger.debug("Flush worker exit hook failed", exc_info=True)


class ErrorReporter:
    """Client-side error reporter with batching, rate limiting and retries.

    Construct one per application (or use the shared ``error_reporter``),
    call :meth:`init` at startup and :meth:`destroy` at shutdown. Until
    ``init`` is called, and whenever the config has ``enabled=False``,
    capture calls do nothing.

    Capture calls may come from any thread. In-memory state is guarded by a
    lock that is never held across network I/O, and at most one flush is
    in flight at a time.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize an uninitialized reporter.

        Args:
            transport: Optional transport used instead of the HTTP transport
                built from the config (e.g. SilentTransport in tests)
            clock: Monotonic clock in seconds used for rate limiting
        """
        self._config = ReporterConfig()
        self._queue: list[ErrorReportPayload] = []
        self._breadcrumbs = BreadcrumbTrail(self._config.max_breadcrumbs)
        self._rate_limiter = RateLimiter(clock=clock)
        self._context_resolver: ContextResolver = NullContextResolver()
        self._default_tags: dict[str, str] = {}
        self._transport_override = transport
        self._transport: Transport | None = transport
        self._worker: FlushWorker | None = None
        self._initialized = False
        self._user_id: str | None = None
        self._lock = threading.RLock()
        self._flush_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @never_raise(log_message="Error reporter initialization failed")
    def init(self, config: ReporterConfig | None = None, **overrides: Any) -> None:
        """Initialize (or re-initialize) the reporter.

        The supplied config (plus keyword overrides) replaces the previous
        one and the periodic flush restarts. Queued reports and breadcrumbs
        are kept.
        """
        resolved = config or ReporterConfig()
        if overrides:
            resolved = resolved.merged(**overrides)

        worker = FlushWorker(
            self.flush,
            resolved.flush_interval_ms / 1000.0,
            on_tick=self._sweep_rate_limits,
        )

        with self._lock:
            self._config = resolved
            self._default_tags = dict(resolved.default_tags)
            self._context_resolver = resolved.context_resolver or CallbackContextResolver(
                get_user_id=resolved.get_user_id,
                get_url=resolved.get_url,
            )
            self._breadcrumbs.resize(resolved.max_breadcrumbs)
            self._rate_limiter.limit = resolved.rate_limit_per_fingerprint
            self._rate_limiter.window_ms = resolved.rate_limit_window_ms
            previous_transport = self._transport
            self._transport = self._transport_override or self._build_transport(resolved)
            previous_worker = self._worker
            self._worker = worker
            self._initialized = True

        if previous_worker is not None:
            previous_worker.stop(on_exit=self._closer_for(previous_transport))
        worker.start()

        self._debug_log("Error reporter initialized")

    @never_raise()
    def destroy(self) -> None:
        """Stop the periodic flush and send what is queued without waiting."""
        with self._lock:
            worker = self._worker
            transport = self._transport
            self._worker = None
            self._initialized = False

        if worker is not None:
            worker.stop(final_flush=True, on_exit=self._closer_for(transport))

        self._debug_log("Error reporter destroyed")

    def _closer_for(self, transport: Transport | None) -> Callable[[], None] | None:
        """Close hook for a transport this reporter built; injected ones are left open."""
        if transport is None or transport is self._transport_override:
            return None
        return transport.close

    @staticmethod
    def _build_transport(config: ReporterConfig) -> Transport:
        policy = RetryPolicy(
            RetryConfig(
                max_attempts=config.retry_max_attempts,
                base_delay_ms=config.retry_base_delay_ms,
            )
        )
        return HttpTransport(
            config.endpoint,
            fetch_fn=config.fetch_fn,
            retry_policy=policy,
            timeout_seconds=config.request_timeout_seconds,
            debug=config.debug,
        )

    # ------------------------------------------------------------------
    # Public capture API
    # ------------------------------------------------------------------

    @never_raise()
    def capture_error(
        self,
        error: Any,
        *,
        component: str | None = None,
        action: str | None = None,
        tags: dict[str, str] | None = None,
        context: dict[str, Any] | None = None,
        level: str | None = None,
        fingerprint: str | None = None,
    ) -> None:
        """Capture an exception, string or arbitrary object.

        The level defaults to "error" when a stack trace is available and
        to "warning" otherwise. The current URL is not attached when a
        component is given.
        """
        if not self.is_enabled():
            return

        message, stack = normalize_error(error)
        extras = CaptureExtras(
            component=component,
            action=action,
            tags=tags,
            context=context,
            level=level,
            fingerprint=fingerprint,
        )
        default_level = ErrorLevel.ERROR.value if stack else ErrorLevel.WARNING.value
        payload = self._build_payload(
            message,
            stack,
            coerce_level(level, default_level),
            extras,
            include_url=not component,
        )
        self._enqueue(payload)

    @never_raise()
    def capture_message(
        self,
        message: str,
        level: str = ErrorLevel.WARNING.value,
        *,
        component: str | None = None,
        action: str | None = None,
        tags: dict[str, str] | None = None,
        context: dict[str, Any] | None = None,
        fingerprint: str | None = None,
    ) -> None:
        """Capture a plain message with a severity level."""
        if not self.is_enabled():
            return

        extras = CaptureExtras(
            component=component,
            action=action,
            tags=tags,
            context=context,
            fingerprint=fingerprint,
        )
        payload = self._build_payload(
            _safe_str(message),
            None,
            coerce_level(level, ErrorLevel.WARNING.value),
            extras,
            include_url=True,
        )
        self._enqueue(payload)

    @never_raise()
    def add_breadcrumb(
        self,
        message: str,
        *,
        category: str | None = None,
        level: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Add a breadcrumb; the oldest ones are dropped past the limit."""
        if not self.is_enabled():
            return
        with self._lock:
            self._breadcrumbs.add(message, category=category, level=level, data=data)

    @never_raise()
    def set_user(self, user_id: str | None) -> None:
        """Set the user id attached to future reports.

        Takes precedence over the configured resolver; ``None`` restores it.
        """
        self._user_id = user_id

    @never_raise()
    def set_tags(self, tags: Mapping[str, Any]) -> None:
        """Merge *tags* into the default tags applied to every report."""
        with self._lock:
            self._default_tags = {
                **self._default_tags,
                **{_safe_str(key): _safe_str(value) for key, value in tags.items()},
            }

    @never_raise()
    def flush(self, wait_seconds: float | None = None) -> None:
        """Send everything queued as one batch on the calling thread.

        By default this returns immediately if another flush is still in
        flight; the queued reports then go out with the next flush. With
        *wait_seconds* it waits up to that long for the in-flight flush to
        finish and then sends what is still queued. Never raises.
        """
        if wait_seconds is None:
            acquired = self._flush_lock.acquire(blocking=False)
        else:
            acquired = self._flush_lock.acquire(timeout=max(wait_seconds, 0.0))
        if not acquired:
            self._debug_log("Flush already in progress, skipping")
            return
        try:
            with self._lock:
                if not self._queue:
                    return
                batch = self._queue
                self._queue = []
                transport = self._transport
            if transport is not None:
                transport.send(batch)
        finally:
            self._flush_lock.release()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_enabled(self) -> bool:
        return self._initialized and self._config.enabled

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def config(self) -> ReporterConfig:
        return self._config

    @property
    def pending_count(self) -> int:
        """Number of reports waiting for the next flush."""
        with self._lock:
            return len(self._queue)

    @property
    def breadcrumbs(self) -> tuple[ErrorBreadcrumb, ...]:
        with self._lock:
            return self._breadcrumbs.snapshot()

    @property
    def default_tags(self) -> dict[str, str]:
        with self._lock:
            return dict(self._default_tags)

    @property
    def worker(self) -> FlushWorker | None:
        return self._worker

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_payload(
        self,
        message: str,
        stack: str | None,
        level: str,
        extras: CaptureExtras,
        include_url: bool,
    ) -> ErrorReportPayload:
        config = self._config
        user_id = self._resolve_user_id()
        url = self._resolve_url() if include_url else None

        with self._lock:
            breadcrumbs = self._breadcrumbs.snapshot()
            tags = {**self._default_tags, **(extras.tags or {})}

        return ErrorReportPayload(
            message=message,
            stack_trace=stack,
            level=level,
            platform=config.platform,
            environment=config.environment,
            release=config.release or None,
            user_id=user_id,
            url=url,
            component=extras.component,
            action=extras.action,
            breadcrumbs=breadcrumbs,
            context=dict(extras.context or {}),
            tags=tags,
            fingerprint=extras.fingerprint,
        )

    def _enqueue(self, payload: ErrorReportPayload) -> None:
        config = self._config
        if payload.fingerprint is None:
            payload.fingerprint = compute_fingerprint(payload.message, payload.stack_trace)

        # Truncate after fingerprinting so grouping sees the full text
        payload.message = payload.message[: config.max_message_length]
        if payload.stack_trace is not None:
            payload.stack_trace = payload.stack_trace[: config.max_stack_length]

        with self._lock:
            if self._rate_limiter.is_rate_limited(payload.fingerprint):
                limited = True
                queue_full = False
            else:
                limited = False
                self._queue.append(payload)
                queue_full = len(self._queue) >= config.max_queue_size

        if limited:
            self._debug_log(f"Rate limited: {payload.fingerprint[:8]}...")
            return
        if queue_full:
            self._request_flush()

    def _request_flush(self) -> None:
        worker = self._worker
        if worker is not None:
            worker.request_flush()

    @never_raise()
    def _sweep_rate_limits(self) -> None:
        with self._lock:
            removed = self._rate_limiter.sweep_expired()
        if removed:
            self._debug_log(f"Swept {removed} expired rate-limit entries")

    def _resolve_user_id(self) -> str | None:
        if self._user_id is not None:
            return self._user_id
        try:
            return self._context_resolver.user_id()
        except Exception:
            logger.debug("Context resolver failed to provide a user id", exc_info=True)
            return None

    def _resolve_url(self) -> str | None:
        try:
            return self._context_resolver.url()
        except Exception:
            logger.debug("Context resolver failed to provide a URL", exc_info=True)
            return None

    def _debug_log(self, message: str) -> None:
        if self._config.debug:
            try:
                logger.debug(f"[ErrorReporter] {message}")
            except Exception:
                pass


# Shared instance for hosts that want a single reporter per process
error_reporter = ErrorReporter()
