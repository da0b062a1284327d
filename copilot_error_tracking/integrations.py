# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Hooks that feed host-process failures into an ErrorReporter.

- ``install_global_handlers``: uncaught exceptions on the main thread and on
  worker threads
- ``asyncio_exception_handler``: exceptions nobody retrieved from asyncio
  tasks and callbacks
- ``capture_exceptions``: scoped capture around a block or function
- ``BreadcrumbHandler``: log records as breadcrumbs
"""

import logging
import sys
import threading
import traceback
from collections.abc import Callable
from contextlib import ContextDecorator
from typing import Any

from .reporter import ErrorReporter

logger = logging.getLogger(__name__)

_PACKAGE_LOGGER_PREFIX = __name__.rsplit(".", 1)[0]

CRASH_FLUSH_TIMEOUT_SECONDS = 5.0


def _origin_context(tb: Any) -> dict[str, Any]:
    """Filename/line of the innermost frame of *tb*, if any."""
    if tb is None:
        return {}
    frames = traceback.extract_tb(tb)
    if not frames:
        return {}
    frame = frames[-1]
    return {"filename": frame.filename, "lineno": frame.lineno, "function": frame.name}


def install_global_handlers(
    reporter: ErrorReporter,
    flush_on_crash: bool = True,
    crash_flush_timeout: float = CRASH_FLUSH_TIMEOUT_SECONDS,
) -> Callable[[], None]:
    """Report uncaught exceptions through *reporter*.

    Chains ``sys.excepthook`` and ``threading.excepthook``; the previous
    hooks still run afterwards. ``KeyboardInterrupt`` and ``SystemExit`` are
    not reported.

    Args:
        reporter: Reporter receiving the captured errors
        flush_on_crash: Flush synchronously after an uncaught main-thread
            exception, since the process is about to exit
        crash_flush_timeout: Seconds to wait for a flush already in flight
            before sending the crash report

    Returns:
        Callable that restores the previous hooks
    """
    previous_excepthook = sys.excepthook
    previous_threading_hook = threading.excepthook

    def excepthook(exc_type, exc_value, exc_tb):
        if not issubclass(exc_type, (KeyboardInterrupt, SystemExit)):
            reporter.capture_error(
                exc_value,
                action="uncaught_exception",
                context=_origin_context(exc_tb),
            )
            if flush_on_crash:
                reporter.flush(wait_seconds=crash_flush_timeout)
        previous_excepthook(exc_type, exc_value, exc_tb)

    def threading_excepthook(args):
        if args.exc_type is not None and not issubclass(args.exc_type, SystemExit):
            context = _origin_context(args.exc_traceback)
            if args.thread is not None:
                context["thread"] = args.thread.name
            reporter.capture_error(
                args.exc_value,
                action="uncaught_thread_exception",
                context=context,
            )
        previous_threading_hook(args)

    sys.excepthook = excepthook
    threading.excepthook = threading_excepthook
    logger.debug("Installed global exception hooks")

    def uninstall() -> None:
        if sys.excepthook is excepthook:
            sys.excepthook = previous_excepthook
        if threading.excepthook is threading_excepthook:
            threading.excepthook = previous_threading_hook
        logger.debug("Removed global exception hooks")

    return uninstall


def asyncio_exception_handler(reporter: ErrorReporter) -> Callable[[Any, dict[str, Any]], None]:
    """Build a loop exception handler that reports then defers to the default.

    Usage:
        loop.set_exception_handler(asyncio_exception_handler(reporter))
    """

    def handler(loop, context: dict[str, Any]) -> None:
        exception = context.get("exception")
        message = context.get("message")
        if exception is not None:
            reporter.capture_error(
                exception,
                action="unhandled_task_exception",
                context={"message": message} if message else None,
            )
        else:
            reporter.capture_message(
                message or "Unhandled asyncio error",
                level="error",
                action="unhandled_task_exception",
            )
        loop.default_exception_handler(context)

    return handler


class capture_exceptions(ContextDecorator):
    """Report exceptions raised inside a block or decorated function.

    Usable as ``with capture_exceptions(reporter, component="Checkout"):``
    or as a decorator. By default the exception is re-raised after it has
    been captured; pass ``reraise=False`` to suppress it.
    """

    def __init__(
        self,
        reporter: ErrorReporter,
        *,
        component: str | None = None,
        action: str | None = None,
        tags: dict[str, str] | None = None,
        reraise: bool = True,
    ):
        self.reporter = reporter
        self.component = component
        self.action = action
        self.tags = tags
        self.reraise = reraise

    def __enter__(self) -> "capture_exceptions":
        return self

    def __exit__(self, exc_type, exc_value, exc_tb) -> bool:
        if exc_value is None or not isinstance(exc_value, Exception):
            return False
        self.reporter.capture_error(
            exc_value,
            component=self.component,
            action=self.action,
            tags=self.tags,
        )
        return not self.reraise


class BreadcrumbHandler(logging.Handler):
    """Logging handler that records each log record as a breadcrumb.

    Records emitted by this package's own loggers are ignored.
    """

    def __init__(self, reporter: ErrorReporter, level: int = logging.INFO):
        super().__init__(level=level)
        self.reporter = reporter

    @staticmethod
    def _map_level(levelno: int) -> str:
        if levelno >= logging.CRITICAL:
            return "fatal"
        if levelno >= logging.ERROR:
            return "error"
        if levelno >= logging.WARNING:
            return "warning"
        return "info"

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_PACKAGE_LOGGER_PREFIX):
            return
        try:
            self.reporter.add_breadcrumb(
                record.getMessage(),
                category="log",
                level=self._map_level(record.levelno),
                data={"logger": record.name},
            )
        except Exception:
            self.handleError(record)
