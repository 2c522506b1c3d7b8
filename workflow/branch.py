"""If — conditional dispatch to exactly one of two actions."""

from __future__ import annotations

from typing import Any, Callable

from .errors import ConditionError
from .protocol import check_action


class If:
    """Evaluate *condition* on the input, then run ``if_true`` or ``if_false``.

    Both branches receive the original input.  Only one of them ever runs,
    and its output (or exception) is returned unchanged.

    If *condition* raises, a ``ConditionError`` chained to the original
    exception is raised and neither branch runs.  When any of the three
    pieces is ``None`` the conditional behaves like ``NoOp()``.
    """

    def __init__(
        self,
        condition: Callable[[Any], bool] | None,
        if_true: Callable[[Any], Any] | None,
        if_false: Callable[[Any], Any] | None,
    ) -> None:
        check_action(condition, where="If(condition)")
        check_action(if_true, where="If(if_true)")
        check_action(if_false, where="If(if_false)")
        self.condition = condition
        self.if_true = if_true
        self.if_false = if_false

    @property
    def is_noop(self) -> bool:
        return self.condition is None or self.if_true is None or self.if_false is None

    def __call__(self, value: Any) -> Any:
        if self.is_noop:
            return None

        try:
            matched = self.condition(value)
        except ConditionError:
            raise
        except Exception as exc:
            raise ConditionError(
                f"condition {_name(self.condition)} failed: {exc}"
            ) from exc

        if matched:
            return self.if_true(value)
        return self.if_false(value)


def _name(fn: Any) -> str:
    return getattr(fn, "__name__", type(fn).__name__)
