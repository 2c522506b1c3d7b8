"""Composable actions: chain, branch, fan out, recover and retry units of work.

Public surface::

    from workflow import (
        Action,
        Result,
        NoOp,
        Do,
        Sequential,
        If,
        Parallel,
        ReduceStrategy,
        Catch,
        Finally,
        Retry,
        RetryOptions,
        Definition,
        ActionError,
        TypeMismatchError,
        ConditionError,
        ParallelError,
        WorkflowConfigError,
    )
"""

from .action import Do, NoOp, Sequential
from .branch import If
from .definition import Definition
from .errors import (
    ActionError,
    ConditionError,
    ParallelError,
    TypeMismatchError,
    WorkflowConfigError,
    output_of,
)
from .parallel import Parallel, ReduceStrategy
from .protocol import Action, Result
from .recovery import Catch, Finally
from .retry import (
    Retry,
    RetryOptions,
    backoff_exponential,
    backoff_linear,
    backoff_none,
    jittered_delay,
)

__all__ = [
    "Action",
    "Result",
    "NoOp",
    "Do",
    "Sequential",
    "If",
    "Parallel",
    "ReduceStrategy",
    "Catch",
    "Finally",
    "Retry",
    "RetryOptions",
    "backoff_none",
    "backoff_linear",
    "backoff_exponential",
    "jittered_delay",
    "Definition",
    "ActionError",
    "TypeMismatchError",
    "ConditionError",
    "ParallelError",
    "WorkflowConfigError",
    "output_of",
]
