# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Delivery of payload batches to the error ingestion endpoint."""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

import requests

from .models import ErrorReportPayload
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}

# The endpoint accepted the batch, or chose to drop it (server-side rate limit)
HTTP_TOO_MANY_REQUESTS = 429


class Transport(ABC):
    """Abstract base class for batch transports."""

    @abstractmethod
    def send(self, items: Sequence[ErrorReportPayload]) -> bool:
        """Deliver one batch.

        Args:
            items: Payloads to deliver as one unit

        Returns:
            True if the batch reached a terminal success state, False if it
            was dropped
        """
        pass

    def close(self) -> None:
        """Release any resources held by the transport."""
        pass


def _safe_repr(value: Any) -> str:
    try:
        return repr(value)
    except Exception:
        return object.__repr__(value)


def _dumps(data: dict[str, Any]) -> str:
    # NaN and Infinity are not valid JSON
    return json.dumps(data, default=str, allow_nan=False)


def _as_text(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of a payload dict with host-supplied values replaced by their repr."""
    degraded = dict(data)
    if "context" in degraded:
        degraded["context"] = {"repr": _safe_repr(degraded["context"])}
    if "tags" in degraded:
        degraded["tags"] = {
            str(key): value if isinstance(value, str) else _safe_repr(value)
            for key, value in degraded["tags"].items()
        }
    degraded["breadcrumbs"] = [
        {**crumb, "data": {"repr": _safe_repr(crumb["data"])}} if "data" in crumb else crumb
        for crumb in degraded.get("breadcrumbs", [])
    ]
    return degraded


def _encode_payload(item: ErrorReportPayload) -> str | None:
    """Encode one payload, degrading host-supplied data to text if needed.

    ``context``, ``tags`` and breadcrumb ``data`` come from the host
    application and may be circular or hold non-finite floats. When the
    full payload cannot be encoded those values are replaced by their
    ``repr`` so the report itself still goes out.
    """
    data = item.to_dict()
    try:
        return _dumps(data)
    except (TypeError, ValueError, RecursionError):
        logger.debug("Payload %s not JSON-serialisable, sending context as text", item.fingerprint)

    try:
        return _dumps(_as_text(data))
    except Exception:
        logger.debug("Skipping payload %s that cannot be serialised", item.fingerprint, exc_info=True)
        return None


def encode_batch(items: Sequence[ErrorReportPayload]) -> tuple[str | None, int]:
    """Encode *items* as the request body.

    A single payload is sent as a JSON object and two or more as a JSON
    array; the ingestion endpoint accepts both shapes. The shape follows the
    number of items passed in, even if one of them had to be left out.

    Returns:
        Tuple of (body, number of payloads encoded); body is None when
        nothing could be encoded
    """
    encoded = [body for body in (_encode_payload(item) for item in items) if body is not None]

    if not encoded:
        return None, 0
    if len(items) == 1:
        return encoded[0], 1
    return "[" + ",".join(encoded) + "]", len(encoded)


def is_delivered(response: Any) -> bool:
    """Return True for a 2xx or 429 response.

    Responses without a ``status_code`` fall back to an ``ok`` attribute so
    that simple stand-ins for ``requests.post`` can be injected.
    """
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return 200 <= status < 300 or status == HTTP_TOO_MANY_REQUESTS
    return bool(getattr(response, "ok", False))


class HttpTransport(Transport):
    """POSTs batches as JSON with bounded retries and exponential backoff.

    The default sender is a pooled ``requests.Session`` so connections are
    kept alive between batches. Any ``requests.post``-compatible callable
    may be injected as ``fetch_fn``; it is called as
    ``fetch_fn(url, data=body, headers=headers, timeout=timeout)``.
    """

    def __init__(
        self,
        endpoint: str,
        fetch_fn: Callable[..., Any] | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout_seconds: float = 10.0,
        debug: bool = False,
    ):
        """Initialize HTTP transport.

        Args:
            endpoint: URL of the error ingestion API
            fetch_fn: Optional ``requests.post``-compatible callable
            retry_policy: Retry policy (3 attempts, 1s/2s backoff if None)
            timeout_seconds: Per-request timeout
            debug: Log delivery outcomes at DEBUG level
        """
        self.endpoint = endpoint
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_seconds = timeout_seconds
        self.debug = debug
        self._session: requests.Session | None = None
        self._fetch_fn = fetch_fn

    def _post(self, body: str) -> Any:
        if self._fetch_fn is not None:
            return self._fetch_fn(
                self.endpoint,
                data=body,
                headers=dict(JSON_HEADERS),
                timeout=self.timeout_seconds,
            )
        if self._session is None:
            self._session = requests.Session()
        return self._session.post(
            self.endpoint,
            data=body.encode("utf-8"),
            headers=dict(JSON_HEADERS),
            timeout=self.timeout_seconds,
        )

    def _debug_log(self, message: str, *args: Any) -> None:
        if self.debug:
            logger.debug(message, *args)

    def send(self, items: Sequence[ErrorReportPayload]) -> bool:
        """Deliver *items* as one batch, retrying the whole batch on failure.

        Never raises. Returns False when every attempt failed and the batch
        was dropped.
        """
        try:
            body, count = encode_batch(items)
        except Exception:
            logger.debug("Failed to encode error batch", exc_info=True)
            return False
        if body is None:
            return False

        max_attempts = self.retry_policy.config.max_attempts
        for attempt in range(max_attempts):
            try:
                response = self._post(body)
                if is_delivered(response):
                    self._debug_log(
                        "Sent %d error(s) - %s",
                        count,
                        getattr(response, "status_code", "ok"),
                    )
                    return True
                self._debug_log(
                    "Attempt %d/%d rejected with status %s",
                    attempt + 1,
                    max_attempts,
                    getattr(response, "status_code", "unknown"),
                )
            except Exception as e:
                self._debug_log("Attempt %d/%d failed: %s", attempt + 1, max_attempts, e)

            if self.retry_policy.should_retry(attempt):
                try:
                    self.retry_policy.sleep(self.retry_policy.calculate_delay_ms(attempt))
                except Exception:
                    logger.debug("Retry backoff interrupted", exc_info=True)

        self._debug_log("Dropped %d error(s) after %d attempts", count, max_attempts)
        return False

    def close(self) -> None:
        if self._session is not None:
            try:
                self._session.close()
            finally:
                self._session = None


class SilentTransport(Transport):
    """Transport that stores batches in memory instead of sending them.

    Useful for unit tests and for hosts that want to inspect reports
    without network traffic.
    """

    def __init__(self) -> None:
        self.batches: list[list[dict[str, Any]]] = []

    def send(self, items: Sequence[ErrorReportPayload]) -> bool:
        self.batches.append([item.to_dict() for item in items])
        return True

    def get_batches(self) -> list[list[dict[str, Any]]]:
        return self.batches

    def get_payloads(self) -> list[dict[str, Any]]:
        """All payloads sent so far, flattened across batches."""
        return [payload for batch in self.batches for payload in batch]

    def clear(self) -> None:
        self.batches.clear()


class ConsoleTransport(Transport):
    """Transport that writes each payload to the logging system."""

    _LEVEL_MAP = {
        "fatal": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
    }

    def __init__(self, logger_name: str | None = None):
        """Initialize console transport.

        Args:
            logger_name: Optional logger name to use (defaults to module logger)
        """
        self.logger = logging.getLogger(logger_name) if logger_name else logger

    def send(self, items: Sequence[ErrorReportPayload]) -> bool:
        for item in items:
            log_message = f"[{item.fingerprint}] {item.message}"
            if item.component:
                log_message += f" | component={item.component}"
            if item.action:
                log_message += f" | action={item.action}"
            self.logger.log(self._LEVEL_MAP.get(item.level, logging.ERROR), log_message)
            if item.stack_trace:
                self.logger.debug(f"Stack trace:\n{item.stack_trace}")
        return True


def create_transport(transport_type: str = "http", **kwargs: Any) -> Transport:
    """Create a transport by driver name.

    Args:
        transport_type: One of "http", "silent" or "console"
        **kwargs: Arguments for the selected transport

    Returns:
        Transport instance

    Raises:
        ValueError: If transport_type is not recognized
    """
    drivers: dict[str, Callable[..., Transport]] = {
        "http": HttpTransport,
        "silent": SilentTransport,
        "console": ConsoleTransport,
    }
    try:
        factory = drivers[str(transport_type).lower()]
    except KeyError as exc:
        supported = ", ".join(sorted(drivers))
        raise ValueError(
            f"Unknown transport type: {transport_type}. Supported transports: {supported}"
        ) from exc
    return factory(**kwargs)

