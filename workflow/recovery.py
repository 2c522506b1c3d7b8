"""Catch and Finally — error recovery around a wrapped action."""

from __future__ import annotations

from typing import Any, Callable

from .errors import WorkflowConfigError, output_of
from .protocol import check_action

Handler = Callable[[Any, BaseException], Any]


class Catch:
    """Run *action*; if it raises one of *errors*, defer to *handle*.

    ``handle(output, error)`` receives the output attached to the exception
    (``None`` unless it is an ``ActionError`` carrying one) and the exception
    itself.  Whatever it returns becomes the result; to keep failing it
    re-raises.  *handle* is never called when *action* succeeds, and
    exceptions not matching *errors* propagate untouched.
    """

    def __init__(
        self,
        action: Callable[[Any], Any],
        handle: Handler,
        errors: type[BaseException] | tuple[type[BaseException], ...] = Exception,
    ) -> None:
        if action is None or handle is None:
            raise WorkflowConfigError("Catch requires both an action and a handler.")
        check_action(action, where="Catch(action)")
        check_action(handle, where="Catch(handle)")
        self.action = action
        self.handle = handle
        self.errors = errors

    def __call__(self, value: Any) -> Any:
        try:
            return self.action(value)
        except self.errors as exc:
            return self.handle(output_of(exc), exc)


class Finally:
    """Run *action*, then always run ``handler(output, error)`` exactly once.

    ``error`` is ``None`` when *action* succeeded.  The handler's return value
    is the result in both cases, so it may swallow or replace the error;
    to propagate it, the handler raises.

    Only ``Exception`` subclasses reach the handler.  ``KeyboardInterrupt``,
    ``SystemExit`` and other ``BaseException`` subclasses propagate without
    calling it.
    """

    def __init__(
        self,
        action: Callable[[Any], Any],
        handler: Callable[[Any, BaseException | None], Any],
    ) -> None:
        if action is None or handler is None:
            raise WorkflowConfigError("Finally requires both an action and a handler.")
        check_action(action, where="Finally(action)")
        check_action(handler, where="Finally(handler)")
        self.action = action
        self.handler = handler

    def __call__(self, value: Any) -> Any:
        try:
            output = self.action(value)
        except Exception as exc:
            return self.handler(output_of(exc), exc)
        return self.handler(output, None)
