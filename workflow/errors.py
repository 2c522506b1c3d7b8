"""Workflow error types."""

from __future__ import annotations

from typing import Any


class ActionError(Exception):
    """A leaf action failed.

    Raise this (or a subclass) when the failing action still has an output
    worth reporting.  Combinators pass it through unmodified; ``Catch``,
    ``Finally`` and ``Retry.should_retry`` receive ``output`` alongside the
    exception.
    """

    def __init__(self, message: str = "", *, output: Any = None) -> None:
        super().__init__(message)
        self.output = output


class TypeMismatchError(ActionError, TypeError):
    """A typed action received an input of the wrong runtime type."""

    def __init__(self, expected: Any, actual: Any) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"expected input of type {_type_name(expected)}, "
            f"got {type(actual).__name__}"
        )


class ConditionError(Exception):
    """The predicate of an ``If`` raised.

    The predicate's own exception is available as ``__cause__``.  Failures of
    the branches themselves are never wrapped in this type.
    """


class ParallelError(Exception):
    """One or more parallel sub-actions failed.

    All sub-actions always run to completion before this is raised.
    ``failures`` holds one exception per failed sub-action, in listed order.
    """

    def __init__(self, failures: list[BaseException]) -> None:
        self.failures = failures
        super().__init__(
            f"{len(failures)} parallel action(s) failed: "
            + "; ".join(type(e).__name__ for e in failures)
        )


class WorkflowConfigError(Exception):
    """Invalid workflow wiring.

    Examples:
    - A non-callable object passed where an action is expected.
    - A negative ``RetryOptions`` delay or retry count.
    - An unparsable ``WORKFLOW_RETRY_*`` environment setting.
    """


def output_of(exc: BaseException) -> Any:
    """Return the output attached to *exc*, or ``None`` if it carries none."""
    return getattr(exc, "output", None)


def _type_name(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " | ".join(t.__name__ for t in expected)
    return getattr(expected, "__name__", repr(expected))
