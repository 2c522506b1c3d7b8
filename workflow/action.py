"""Atomic actions, the typed adapter and the sequential composer."""

from __future__ import annotations

import inspect
import typing
from typing import Any, Callable

from .errors import TypeMismatchError, WorkflowConfigError
from .protocol import check_action


class NoOp:
    """Action that ignores its input and always returns ``None``."""

    def __call__(self, value: Any) -> None:
        return None


# ---------------------------------------------------------------------------
# Typed adapter
# ---------------------------------------------------------------------------


def _declared_input_type(fn: Callable) -> type | None:
    """Return the annotation of *fn*'s first parameter when it is a plain class.

    Generic aliases (``list[int]``), ``Any``, string annotations that cannot
    be resolved, and callables without a signature yield ``None``, and the
    adapter then skips the input check.
    """
    try:
        params = list(inspect.signature(fn).parameters.values())
        hints = typing.get_type_hints(fn)
    except (TypeError, ValueError, NameError):
        return None
    if not params:
        return None
    hint = hints.get(params[0].name)
    if hint is None or hint is Any or typing.get_origin(hint) is not None:
        return None
    return hint if isinstance(hint, type) else None


class Do:
    """Lift a plain function into an action with a checked input type.

    The expected input type comes from *accepts* (a class or a tuple of
    classes) or, when omitted, from the annotation on *fn*'s first
    parameter::

        def add_one(x: int) -> int:
            return x + 1

        Do(add_one)("3")   # raises TypeMismatchError, add_one is not called

    Values are never coerced.  When no usable type is known the input is
    passed through unchecked.
    """

    def __init__(
        self,
        fn: Callable[[Any], Any],
        accepts: type | tuple[type, ...] | None = None,
    ) -> None:
        if not callable(fn):
            raise WorkflowConfigError(
                f"Do expects a callable, got {type(fn).__name__}."
            )
        if accepts is not None:
            classes = accepts if isinstance(accepts, tuple) else (accepts,)
            if not all(isinstance(c, type) for c in classes):
                raise WorkflowConfigError(
                    f"Do(accepts=...) must be a class or tuple of classes, "
                    f"got {accepts!r}."
                )
        self.fn = fn
        self.accepts = accepts if accepts is not None else _declared_input_type(fn)

    def __call__(self, value: Any) -> Any:
        if self.accepts is not None and not isinstance(value, self.accepts):
            raise TypeMismatchError(self.accepts, value)
        return self.fn(value)


# ---------------------------------------------------------------------------
# Sequential composer
# ---------------------------------------------------------------------------


class Sequential:
    """Chain actions so each one consumes the previous one's output.

    The first action to raise stops the chain: its exception propagates
    unchanged and later actions never run.  ``None`` entries are skipped, so
    ``Sequential()`` and ``Sequential(None, None)`` behave like ``NoOp()``
    and ``Sequential(a)`` behaves exactly like ``a``.
    """

    def __init__(self, *actions: Callable[[Any], Any] | None) -> None:
        for action in actions:
            check_action(action, where="Sequential")
        self.actions: tuple = tuple(a for a in actions if a is not None)

    def __call__(self, value: Any) -> Any:
        if not self.actions:
            return None
        for action in self.actions:
            value = action(value)
        return value
