# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Bounded breadcrumb trail."""

from collections import deque
from typing import Any

from .models import ErrorBreadcrumb, ErrorLevel, coerce_level


class BreadcrumbTrail:
    """FIFO trail of the most recent breadcrumbs.

    Once more than ``max_breadcrumbs`` entries have been added the oldest
    ones are evicted first. Snapshots are independent of later additions.
    """

    def __init__(self, max_breadcrumbs: int = 100):
        if max_breadcrumbs < 1:
            raise ValueError("max_breadcrumbs must be at least 1")
        self._crumbs: deque[ErrorBreadcrumb] = deque(maxlen=max_breadcrumbs)

    @property
    def max_breadcrumbs(self) -> int:
        return self._crumbs.maxlen or 0

    def add(
        self,
        message: str,
        *,
        category: str | None = None,
        level: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> ErrorBreadcrumb:
        """Append a breadcrumb stamped with the current time and return it."""
        crumb = ErrorBreadcrumb(
            message=str(message),
            category=category if category is not None else "custom",
            level=coerce_level(level, ErrorLevel.INFO.value),
            data=dict(data) if data is not None else None,
        )
        self._crumbs.append(crumb)
        return crumb

    def snapshot(self) -> tuple[ErrorBreadcrumb, ...]:
        return tuple(self._crumbs)

    def resize(self, max_breadcrumbs: int) -> None:
        """Change the bound, keeping the newest entries."""
        if max_breadcrumbs < 1:
            raise ValueError("max_breadcrumbs must be at least 1")
        if max_breadcrumbs != self._crumbs.maxlen:
            self._crumbs = deque(self._crumbs, maxlen=max_breadcrumbs)

    def clear(self) -> None:
        self._crumbs.clear()

    def __len__(self) -> int:
        return len(self._crumbs)
