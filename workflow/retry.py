"""Retry — re-invoke a failing action with backoff and jitter.

Each call walks a small state machine::

    attempting ──ok──────────────────────────────▶ success   (return output)
        │
        ├─ error on the last allowed attempt ────▶ exhausted (re-raise)
        ├─ error and should_retry() is False ────▶ vetoed    (re-raise)
        └─ error otherwise ──▶ retrying: sleep, grow delay, attempt again

Attempt 0 is the initial call, so ``max_retries=k`` allows at most ``k + 1``
calls.  The last error is always re-raised unchanged; Retry never wraps it.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from tenacity import RetryCallState, Retrying, stop_after_attempt

from .errors import WorkflowConfigError, output_of
from .protocol import check_action

logger = logging.getLogger(__name__)

BackoffStrategy = Callable[[float], float]


# ---------------------------------------------------------------------------
# Backoff strategies
# ---------------------------------------------------------------------------


def backoff_none() -> BackoffStrategy:
    """Keep the delay constant between retries."""

    def strategy(delay: float) -> float:
        return delay

    return strategy


def backoff_linear(increment: float) -> BackoffStrategy:
    """Add *increment* seconds to the delay after each retry."""
    if increment < 0:
        raise WorkflowConfigError("backoff_linear increment must be >= 0.")

    def strategy(delay: float) -> float:
        return delay + increment

    return strategy


def backoff_exponential(factor: float = 2.0) -> BackoffStrategy:
    """Multiply the delay by *factor* after each retry (doubling by default)."""
    if factor < 1:
        raise WorkflowConfigError("backoff_exponential factor must be >= 1.")

    def strategy(delay: float) -> float:
        return delay * factor

    return strategy


def _parse_backoff(setting: str) -> Optional[BackoffStrategy]:
    """Parse ``none`` | ``exponential`` | ``exponential:<factor>`` | ``linear:<seconds>``."""
    name, _, arg = setting.strip().lower().partition(":")
    try:
        if name == "none":
            return None
        if name == "exponential":
            return backoff_exponential(float(arg)) if arg else backoff_exponential()
        if name == "linear" and arg:
            return backoff_linear(float(arg))
    except ValueError as exc:
        raise WorkflowConfigError(f"Invalid backoff setting {setting!r}: {exc}") from exc
    raise WorkflowConfigError(
        f"Unknown backoff setting {setting!r}; expected none, exponential[:factor] "
        f"or linear:<seconds>."
    )


def jittered_delay(delay: float, jitter: float) -> float:
    """Draw a sleep duration uniformly from ``[max(0, delay - jitter), delay + jitter]``."""
    if jitter <= 0:
        return max(0.0, delay)
    return random.uniform(max(0.0, delay - jitter), delay + jitter)


# ---------------------------------------------------------------------------
# RetryOptions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryOptions:
    """Configuration for one retry-wrapped action.

    All durations are in seconds.  The field defaults are the default policy
    applied when ``Retry`` is given no options: three retries starting at
    200 ms, doubling, capped at 30 s, with ±50 ms of jitter.

    ``max_delay=0`` leaves the delay unbounded.  ``backoff_strategy=None``
    keeps the delay constant.  ``should_retry(output, error)`` is consulted
    after every failed attempt that is not the last one; returning False
    stops retrying immediately.
    """

    max_retries: int = 3
    initial_delay: float = 0.2
    max_delay: float = 30.0
    jitter: float = 0.05
    should_retry: Optional[Callable[[Any, BaseException], bool]] = None
    backoff_strategy: Optional[BackoffStrategy] = field(
        default_factory=backoff_exponential
    )

    def __post_init__(self) -> None:
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise WorkflowConfigError("RetryOptions.max_retries must be an int.")
        for name in ("max_retries", "initial_delay", "max_delay", "jitter"):
            if getattr(self, name) < 0:
                raise WorkflowConfigError(f"RetryOptions.{name} must be >= 0.")
        check_action(self.should_retry, where="RetryOptions.should_retry")
        check_action(self.backoff_strategy, where="RetryOptions.backoff_strategy")

    def next_delay(self, delay: float) -> float:
        """Apply one backoff step to *delay*, then clamp it to ``max_delay``."""
        if self.backoff_strategy is not None:
            delay = self.backoff_strategy(delay)
        if self.max_delay > 0 and delay > self.max_delay:
            delay = self.max_delay
        return delay

    def scheduled_delay(self, retry: int) -> float:
        """Un-jittered delay before retry number *retry* (1 is the first retry).

        A preview of the schedule, recomputed from ``initial_delay`` on each
        call.  Only meaningful for stateless backoff strategies; ``Retry``
        itself advances the delay once per sleep.
        """
        delay = self.initial_delay
        for _ in range(retry - 1):
            delay = self.next_delay(delay)
        return delay

    @classmethod
    def default(cls) -> "RetryOptions":
        """The policy used when ``Retry`` is constructed without options."""
        return cls()

    @classmethod
    def from_env(
        cls,
        prefix: str = "WORKFLOW_RETRY_",
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "RetryOptions":
        """Build options from ``<prefix>MAX_RETRIES``, ``INITIAL_DELAY``,
        ``MAX_DELAY``, ``JITTER`` and ``BACKOFF``; unset keys keep defaults.

        Keyword *overrides* win over the environment (use them for the
        callables, which cannot come from the environment).
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        parsers: dict[str, Callable[[str], Any]] = {
            "max_retries": int,
            "initial_delay": float,
            "max_delay": float,
            "jitter": float,
        }
        for name, parse in parsers.items():
            raw = env.get(prefix + name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                kwargs[name] = parse(raw)
            except ValueError as exc:
                raise WorkflowConfigError(
                    f"Invalid {prefix + name.upper()}={raw!r}: {exc}"
                ) from exc

        backoff = env.get(prefix + "BACKOFF")
        if backoff:
            kwargs["backoff_strategy"] = _parse_backoff(backoff)

        kwargs.update(overrides)
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------------


class Retry:
    """Wrap *action* so failures are retried according to *options*.

    Attempts are driven by ``tenacity.Retrying``: the stop condition allows
    ``max_retries + 1`` attempts, ``should_retry`` vetoes further attempts,
    and the wait follows the options' backoff schedule plus jitter.  Both
    exhaustion and a veto re-raise the action's own exception.

    Each call keeps its own current delay, starting at ``initial_delay``.
    After every sleep the backoff strategy runs exactly once and the result
    is clamped to ``max_delay``; it never runs when no sleep follows.

    The sleep between attempts blocks the calling thread and cannot be
    interrupted; wrap the whole call in an external timeout if needed.
    """

    def __init__(
        self,
        action: Callable[[Any], Any],
        options: Optional[RetryOptions] = None,
    ) -> None:
        if action is None:
            raise WorkflowConfigError("Retry requires an action.")
        check_action(action, where="Retry")
        self.action = action
        self.options = options if options is not None else RetryOptions.default()

    # ------------------------------------------------------------------
    # tenacity hooks
    # ------------------------------------------------------------------

    def _should_retry(self, state: RetryCallState) -> bool:
        outcome = state.outcome
        if outcome is None or not outcome.failed:
            return False
        exc = outcome.exception()
        if not isinstance(exc, Exception):
            return False
        opts = self.options
        if state.attempt_number > opts.max_retries:
            # Let the stop condition end the loop and re-raise.
            if opts.max_retries:
                logger.warning(
                    "Retry: giving up after %d attempt(s): %s",
                    state.attempt_number,
                    exc,
                )
            return True
        if opts.should_retry is not None and not opts.should_retry(
            output_of(exc), exc
        ):
            logger.warning(
                "Retry: should_retry declined after attempt %d: %s",
                state.attempt_number,
                exc,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Action entry point
    # ------------------------------------------------------------------

    def __call__(self, value: Any) -> Any:
        opts = self.options
        delay = opts.initial_delay

        def wait(state: RetryCallState) -> float:
            # tenacity may ask for a wait after the final attempt; no sleep follows.
            if state.attempt_number > opts.max_retries:
                return 0.0
            return jittered_delay(delay, opts.jitter)

        def before_sleep(state: RetryCallState) -> None:
            nonlocal delay
            logger.debug(
                "Retry: attempt %d failed (%s); retrying in %.3fs",
                state.attempt_number,
                state.outcome.exception(),
                state.next_action.sleep,
            )
            delay = opts.next_delay(delay)

        retrying = Retrying(
            stop=stop_after_attempt(opts.max_retries + 1),
            retry=self._should_retry,
            wait=wait,
            sleep=_sleep,
            before_sleep=before_sleep,
            reraise=True,
        )
        output = retrying(self.action, value)
        attempts = retrying.statistics.get("attempt_number", 1)
        if attempts > 1:
            logger.info("Retry: succeeded on attempt %d", attempts)
        return output


def _sleep(seconds: float) -> None:
    time.sleep(seconds)
