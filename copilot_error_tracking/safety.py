# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Failure boundary shared by every reporter entry point."""

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def never_raise(default: Any = None, log_message: str | None = None) -> Callable[[F], F]:
    """Decorate *func* so that no ``Exception`` ever escapes it.

    The exception is logged at DEBUG level and *default* is returned instead.
    ``KeyboardInterrupt`` and ``SystemExit`` still propagate.

    Args:
        default: Value returned when the wrapped call fails
        log_message: Optional message for the debug log line
    """

    def decorator(func: F) -> F:
        message = log_message or f"{func.__qualname__} failed"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception:
                try:
                    logger.debug(message, exc_info=True)
                except Exception:
                    pass
                return default

        return wrapper  # type: ignore[return-value]

    return decorator
