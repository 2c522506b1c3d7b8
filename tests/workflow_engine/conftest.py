"""Shared fixtures and reusable dummy actions for workflow engine tests."""

from __future__ import annotations

import threading
import time

import pytest

from workflow import ActionError

# ---------------------------------------------------------------------------
# Reusable dummy actions
# ---------------------------------------------------------------------------


class Counter:
    """Adds *step* to its input and counts invocations (thread-safe)."""

    def __init__(self, step: int = 1):
        self.step = step
        self.calls = 0
        self._lock = threading.Lock()

    def __call__(self, value: int) -> int:
        with self._lock:
            self.calls += 1
        return value + self.step


class Boom:
    """Always raises ActionError carrying *output*; counts invocations."""

    def __init__(self, msg: str = "boom", output=5):
        self.msg = msg
        self.output = output
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        raise ActionError(self.msg, output=self.output)


class Flaky:
    """Fails *failures* times with ActionError(output=5), then returns 3."""

    def __init__(self, failures: int):
        self.remaining = failures
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.remaining > 0:
            self.remaining -= 1
            raise ActionError("flaky", output=5)
        return 3


class Slow:
    """Sleeps for *delay* seconds, then returns (tag, input)."""

    def __init__(self, tag: str, delay: float):
        self.tag = tag
        self.delay = delay

    def __call__(self, value):
        time.sleep(self.delay)
        return (self.tag, value)


class Recorder:
    """Records every input it receives (thread-safe) and passes it through."""

    def __init__(self):
        self.call_log: list = []
        self._lock = threading.Lock()

    def __call__(self, value):
        with self._lock:
            self.call_log.append(value)
        return value


# ---------------------------------------------------------------------------
# Plain functions for Do()
# ---------------------------------------------------------------------------


def add1(x: int) -> int:
    return x + 1


def add2(x: int) -> int:
    return x + 2


def add3(x: int) -> int:
    return x + 3


def is_odd(x: int) -> bool:
    return x % 2 == 1


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def no_sleep(monkeypatch):
    """Replace the retry sleep with a recorder of requested durations."""
    sleeps: list[float] = []
    monkeypatch.setattr("workflow.retry.time.sleep", sleeps.append)
    return sleeps
