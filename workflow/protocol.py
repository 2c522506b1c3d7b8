"""Structural protocol and result type for the workflow engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .errors import WorkflowConfigError


@runtime_checkable
class Action(Protocol):
    """Structural protocol that every action (and every combinator) satisfies.

    An action takes one input and returns one output.  Failure is signalled
    by raising; raise ``ActionError(..., output=...)`` to report a partial
    output together with the error.

    Actions hold no per-call state, so one instance may be invoked any number
    of times, including concurrently, as long as the wrapped computation
    allows it.
    """

    def __call__(self, value: Any) -> Any: ...


@dataclass(frozen=True)
class Result:
    """Outcome of one action invocation.

    Exactly one of ``output`` / ``error`` is meaningful: ``error`` is ``None``
    on success.  A failed action may still carry an ``output`` (taken from
    ``ActionError.output``).
    """

    output: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return ``output``, or raise ``error`` if the action failed."""
        if self.error is not None:
            raise self.error
        return self.output


def check_action(action: Any, *, where: str) -> None:
    """Raise ``WorkflowConfigError`` if *action* is neither ``None`` nor callable."""
    if action is not None and not isinstance(action, Action):
        raise WorkflowConfigError(
            f"{where} expects a callable action, got {type(action).__name__}."
        )
