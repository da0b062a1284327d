# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Shared fixtures for error tracking tests."""

import json
import threading
import time

import pytest

from copilot_error_tracking import ErrorReporter, ReporterConfig, SilentTransport


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start_ms: int = 1_000_000):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms / 1000.0

    def advance_ms(self, ms: int) -> None:
        self.now_ms += ms


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class RecordingFetch:
    """requests.post-compatible callable that records calls.

    ``outcomes`` is consumed one per call: an int becomes a FakeResponse
    with that status, an exception instance is raised. Once exhausted the
    last outcome repeats.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [200]
        self.calls = []
        self.called = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, url, data=None, headers=None, timeout=None):
        with self._lock:
            self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
            index = min(len(self.calls) - 1, len(self.outcomes) - 1)
            outcome = self.outcomes[index]
        self.called.set()
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeResponse(outcome)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def bodies(self):
        return [json.loads(call["data"]) for call in self.calls]


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll *predicate* until it returns True or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def silent_transport():
    return SilentTransport()


@pytest.fixture
def make_reporter():
    """Factory for reporters that are destroyed after the test."""
    created = []

    def _make(transport=None, clock=None, **config_values):
        kwargs = {}
        if clock is not None:
            kwargs["clock"] = clock
        reporter = ErrorReporter(transport=transport, **kwargs)
        config_values.setdefault("flush_interval_ms", 100_000)
        config_values.setdefault("retry_base_delay_ms", 0)
        reporter.init(ReporterConfig(**config_values))
        created.append(reporter)
        return reporter

    yield _make

    for reporter in created:
        worker = reporter.worker
        reporter.destroy()
        if worker is not None:
            worker.join(timeout=2.0)


@pytest.fixture
def reporter(make_reporter, silent_transport, fake_clock):
    """Initialized reporter with an in-memory transport and a fake clock."""
    return make_reporter(transport=silent_transport, clock=fake_clock)


@pytest.fixture
def make_fetch():
    """Factory for RecordingFetch instances."""
    return RecordingFetch


@pytest.fixture(name="wait_for")
def wait_for_fixture():
    return wait_for
