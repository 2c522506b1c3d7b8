"""Parallel — concurrent fan-out to sub-actions, then a single reduce."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable

from .errors import ParallelError, WorkflowConfigError, output_of
from .protocol import Result, check_action

logger = logging.getLogger(__name__)


class ReduceStrategy(Enum):
    """Built-in reducers for Parallel results."""

    RAISE_FIRST = "raise_first"
    COLLECT = "collect"
    RESULTS = "results"


# ---------------------------------------------------------------------------
# Built-in reduce functions
# ---------------------------------------------------------------------------

def _reduce_raise_first(results: list[Result]) -> list[Any]:
    """Raise the first error in listed order; otherwise return every output."""
    for result in results:
        if result.error is not None:
            raise result.error
    return [r.output for r in results]


def _reduce_collect(results: list[Result]) -> list[Any]:
    """Raise ``ParallelError`` carrying every failure; otherwise return outputs."""
    failures = [r.error for r in results if r.error is not None]
    if failures:
        raise ParallelError(failures)
    return [r.output for r in results]


def _reduce_results(results: list[Result]) -> list[Result]:
    """Hand the ``Result`` list back untouched; failures become data."""
    return results


_BUILTIN_REDUCERS: dict[ReduceStrategy, Callable] = {
    ReduceStrategy.RAISE_FIRST: _reduce_raise_first,
    ReduceStrategy.COLLECT: _reduce_collect,
    ReduceStrategy.RESULTS: _reduce_results,
}


# ---------------------------------------------------------------------------
# Parallel
# ---------------------------------------------------------------------------

def _invoke(action: Callable[[Any], Any], value: Any) -> Result:
    try:
        return Result(output=action(value))
    except Exception as exc:
        return Result(output=output_of(exc), error=exc)


class Parallel:
    """Runs several actions concurrently on the same input, then reduces.

    Fan-out is via ``ThreadPoolExecutor``: one task per sub-action, all fed
    the same input value (sub-actions must not mutate it).  The stage is a
    barrier: every sub-action runs to completion even when a sibling fails.
    There is no timeout.

    ``results[i]`` always belongs to the i-th listed action regardless of
    which finished first.  *reduce* is then called once, on the calling
    thread, and its return value (or exception) is the stage's outcome.
    Deciding what a sub-action failure means is entirely up to *reduce*::

        def total(results):
            return sum(r.unwrap() for r in results)

        Parallel(total, Do(add_one), Do(add_two))(1)   # -> 5
    """

    def __init__(
        self,
        reduce: ReduceStrategy | Callable[[list[Result]], Any],
        *actions: Callable[[Any], Any] | None,
        max_workers: int | None = None,
    ) -> None:
        if isinstance(reduce, ReduceStrategy):
            self._reduce_fn: Callable = _BUILTIN_REDUCERS[reduce]
        elif callable(reduce):
            self._reduce_fn = reduce
        else:
            raise WorkflowConfigError(
                f"Parallel expects a reduce callable or ReduceStrategy, "
                f"got {type(reduce).__name__}."
            )
        if max_workers is not None and max_workers < 1:
            raise WorkflowConfigError("Parallel max_workers must be at least 1.")

        for action in actions:
            check_action(action, where="Parallel")
        self.actions: tuple = tuple(a for a in actions if a is not None)
        self.max_workers = max_workers

    def __call__(self, value: Any) -> Any:
        if not self.actions:
            return self._reduce_fn([])

        workers = self.max_workers or len(self.actions)
        logger.debug(
            "Parallel: fanning out to %d action(s) on %d worker(s)",
            len(self.actions),
            workers,
        )
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_invoke, a, value) for a in self.actions]
            results: list[Result] = [f.result() for f in futures]

        failed = sum(1 for r in results if r.error is not None)
        if failed:
            logger.debug(
                "Parallel: %d of %d action(s) failed", failed, len(results)
            )
        return self._reduce_fn(results)
