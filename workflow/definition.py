"""Definition — fluent builder over the combinators."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable

from .action import Sequential
from .branch import If
from .errors import WorkflowConfigError, output_of
from .parallel import Parallel, ReduceStrategy
from .protocol import Result, check_action

logger = logging.getLogger(__name__)


class Definition:
    """Ordered sequence of actions.  Callable itself, so it can be nested.

    Build via the fluent API::

        flow = (
            Definition()
            .then(Do(parse))
            .branch(ReduceStrategy.RAISE_FIRST, Do(score), Do(classify))
            .when(is_valid, Do(store), Do(reject))
        )
        flow.run(raw)

    ``compile()`` returns ``Sequential(*actions)``; running a definition is
    exactly running that sequential action.
    """

    def __init__(self, actions: list | None = None) -> None:
        actions = list(actions or [])
        for action in actions:
            check_action(action, where="Definition")
        self._actions: list = actions

    @property
    def actions(self) -> tuple:
        return tuple(self._actions)

    # ------------------------------------------------------------------
    # Fluent builder
    # ------------------------------------------------------------------

    def then(self, action: Callable[[Any], Any] | None) -> "Definition":
        """Append *action* and return ``self`` for chaining."""
        check_action(action, where="Definition.then")
        self._actions.append(action)
        return self

    def when(
        self,
        condition: Callable[[Any], bool],
        if_true: Callable[[Any], Any],
        if_false: Callable[[Any], Any],
    ) -> "Definition":
        """Append an ``If`` step and return ``self`` for chaining."""
        return self.then(If(condition, if_true, if_false))

    def branch(
        self,
        reduce: ReduceStrategy | Callable[[list[Result]], Any],
        *actions: Callable[[Any], Any],
        max_workers: int | None = None,
    ) -> "Definition":
        """Append a ``Parallel`` step and return ``self`` for chaining."""
        return self.then(Parallel(reduce, *actions, max_workers=max_workers))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def compile(self) -> Sequential:
        """Snapshot the current actions into a single ``Sequential`` action."""
        return Sequential(*self._actions)

    def run(self, value: Any) -> Any:
        """Run every action in order on *value*; the first exception propagates."""
        return self.compile()(value)

    def __call__(self, value: Any) -> Any:
        return self.run(value)

    def run_all(self, values: Iterable[Any], workers: int = 1) -> list[Result]:
        """Run the definition once per input, up to *workers* inputs at a time.

        Every input produces exactly one ``Result``, in input order; nothing
        is dropped silently.  Inspect ``Result.error`` to detect failures.
        """
        if workers < 1:
            raise WorkflowConfigError("Definition.run_all workers must be at least 1.")
        action = self.compile()
        values = list(values)

        def run_one(index: int, value: Any) -> Result:
            try:
                return Result(output=action(value))
            except Exception as exc:
                logger.warning("Definition: input #%d failed: %s", index, exc)
                return Result(output=output_of(exc), error=exc)

        if workers == 1 or len(values) <= 1:
            return [run_one(i, v) for i, v in enumerate(values)]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(run_one, i, v) for i, v in enumerate(values)]
            return [f.result() for f in futures]
