# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Sources of ``ERROR_TRACKING_*`` settings.

A provider only knows how to look up a raw value by its full key. Parsing
and validation of the typed settings happen in the base class, so a
malformed value is treated the same way whichever source it came from: it
is logged and the caller's default is used.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "ERROR_TRACKING_"

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


class ConfigProvider(ABC):
    """Typed access to error tracking settings sharing one key prefix."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix

    @abstractmethod
    def lookup(self, key: str) -> Any:
        """Return the raw value stored under the full *key*, or None."""
        pass

    def key(self, name: str) -> str:
        """Full key for the setting *name*, e.g. ``ENDPOINT``."""
        return f"{self.prefix}{name}"

    def _raw(self, name: str) -> Any:
        value = self.lookup(self.key(name))
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
        return value

    def _invalid(self, name: str, value: Any, expected: str, default: Any) -> Any:
        logger.warning(
            "Ignoring %s=%r (expected %s); using %r",
            self.key(name),
            value,
            expected,
            default,
        )
        return default

    def get_str(self, name: str, default: str) -> str:
        value = self._raw(name)
        return default if value is None else str(value)

    def get_bool(self, name: str, default: bool) -> bool:
        value = self._raw(name)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        text = str(value).lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        return self._invalid(name, value, "a boolean", default)

    def get_positive_int(self, name: str, default: int) -> int:
        value = self._raw(name)
        if value is None:
            return default
        if isinstance(value, bool):
            return self._invalid(name, value, "a positive integer", default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            return self._invalid(name, value, "a positive integer", default)
        if number < 1:
            return self._invalid(name, value, "a positive integer", default)
        return number

    def get_choice(self, name: str, choices: Iterable[str], default: str) -> str:
        """Case-insensitive pick from *choices*; unknown values use *default*."""
        value = self._raw(name)
        if value is None:
            return default
        allowed = tuple(choices)
        text = str(value).lower()
        if text in allowed:
            return text
        return self._invalid(name, value, "one of " + ", ".join(allowed), default)


class EnvConfigProvider(ConfigProvider):
    """Reads settings from environment variables."""

    def __init__(self, environ: Mapping[str, str] | None = None, prefix: str = DEFAULT_PREFIX):
        super().__init__(prefix)
        self._environ = environ if environ is not None else os.environ

    def lookup(self, key: str) -> Any:
        return self._environ.get(key)


class StaticConfigProvider(ConfigProvider):
    """Reads settings from a fixed mapping of full keys (tests, embedded hosts)."""

    def __init__(self, values: Mapping[str, Any] | None = None, prefix: str = DEFAULT_PREFIX):
        super().__init__(prefix)
        self._values = dict(values or {})

    def lookup(self, key: str) -> Any:
        return self._values.get(key)
