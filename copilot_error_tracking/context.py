# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Lazy resolution of per-capture context (current user and URL)."""

from abc import ABC, abstractmethod
from collections.abc import Callable


class ContextResolver(ABC):
    """Supplies context that is looked up fresh at every capture."""

    @abstractmethod
    def user_id(self) -> str | None:
        """Return the current user id, or None if unknown."""
        pass

    @abstractmethod
    def url(self) -> str | None:
        """Return the current route or URL, or None if not applicable."""
        pass


class NullContextResolver(ContextResolver):
    """Resolver that never knows the user or URL."""

    def user_id(self) -> str | None:
        return None

    def url(self) -> str | None:
        return None


class CallbackContextResolver(ContextResolver):
    """Adapts plain zero-argument callables to the ContextResolver interface."""

    def __init__(
        self,
        get_user_id: Callable[[], str | None] | None = None,
        get_url: Callable[[], str | None] | None = None,
    ):
        self._get_user_id = get_user_id
        self._get_url = get_url

    def user_id(self) -> str | None:
        if self._get_user_id is None:
            return None
        return self._get_user_id()

    def url(self) -> str | None:
        if self._get_url is None:
            return None
        return self._get_url()
