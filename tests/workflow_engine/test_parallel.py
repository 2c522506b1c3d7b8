"""Unit tests for Parallel and ReduceStrategy.

Sections
--------
1.  TestParallelConstruction  — reduce selection, wiring validation
2.  TestParallelReduce        — custom reducers, empty fan-out
3.  TestParallelOrdering      — indexed placement under varied timings
4.  TestParallelFailures      — all actions run, failures become Results
5.  TestBuiltinReducers       — RAISE_FIRST / COLLECT / RESULTS
"""

from __future__ import annotations

import itertools
import threading
import time

import pytest

from workflow import (
    ActionError,
    Do,
    Parallel,
    ParallelError,
    ReduceStrategy,
    Result,
    WorkflowConfigError,
)
from workflow.parallel import _reduce_collect, _reduce_raise_first, _reduce_results
from tests.workflow_engine.conftest import Boom, Counter, Slow, add1, add2, add3


def reduce_sum(results: list[Result]) -> int:
    """Reference reducer: short-circuits on the first error it finds."""
    acc = 0
    for result in results:
        if result.error is not None:
            raise result.error
        acc += result.output
    return acc


# ---------------------------------------------------------------------------
# 1. Construction
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestParallelConstruction:
    def test_custom_callable_reduce_selected(self):
        p = Parallel(reduce_sum, Do(add1))
        assert p._reduce_fn is reduce_sum

    def test_strategy_reduce_selected(self):
        p = Parallel(ReduceStrategy.COLLECT, Do(add1))
        assert p._reduce_fn is _reduce_collect

    def test_invalid_reduce_rejected(self):
        with pytest.raises(WorkflowConfigError):
            Parallel("sum", Do(add1))

    def test_non_callable_action_rejected(self):
        with pytest.raises(WorkflowConfigError):
            Parallel(reduce_sum, Do(add1), 3)

    def test_zero_max_workers_rejected(self):
        with pytest.raises(WorkflowConfigError):
            Parallel(reduce_sum, Do(add1), max_workers=0)

    def test_none_actions_dropped(self):
        p = Parallel(reduce_sum, Do(add1), None, Do(add2))
        assert len(p.actions) == 2


# ---------------------------------------------------------------------------
# 2. Reduce
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestParallelReduce:
    def test_sum_of_outputs(self):
        assert Parallel(reduce_sum, Do(add1), Do(add2), Do(add3))(1) == 9

    def test_no_actions_reduces_empty_list(self):
        seen = []

        def reduce(results):
            seen.append(results)
            return 0

        assert Parallel(reduce)(1) == 0
        assert seen == [[]]

    def test_no_actions_spawns_no_threads(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("executor must not be created")

        monkeypatch.setattr("workflow.parallel.ThreadPoolExecutor", fail)
        assert Parallel(reduce_sum)(1) == 0

    def test_reduce_called_once_on_calling_thread(self):
        threads = []

        def reduce(results):
            threads.append(threading.current_thread())
            return len(results)

        assert Parallel(reduce, Do(add1), Do(add2))(1) == 2
        assert threads == [threading.current_thread()]

    def test_reduce_exception_is_stage_outcome(self):
        def reduce(results):
            raise KeyError("reduce failed")

        with pytest.raises(KeyError):
            Parallel(reduce, Do(add1))(1)

    def test_all_actions_see_same_input(self, recorder):
        Parallel(ReduceStrategy.RESULTS, recorder, recorder, recorder)(42)
        assert recorder.call_log == [42, 42, 42]

    def test_max_workers_bounds_concurrency(self):
        lock = threading.Lock()
        active = [0]
        peak = [0]

        def track(value):
            with lock:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.02)
            with lock:
                active[0] -= 1
            return value

        p = Parallel(ReduceStrategy.RAISE_FIRST, *[track] * 6, max_workers=2)
        assert p(1) == [1] * 6
        assert peak[0] <= 2

    def test_actions_run_concurrently(self):
        p = Parallel(ReduceStrategy.RAISE_FIRST, *[Slow(str(i), 0.1) for i in range(4)])
        start = time.monotonic()
        p(0)
        assert time.monotonic() - start < 0.35


# ---------------------------------------------------------------------------
# 3. Ordering
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestParallelOrdering:
    def test_result_length_matches_action_count(self):
        for n in range(0, 6):
            results = Parallel(ReduceStrategy.RESULTS, *[Do(add1)] * n)(0)
            assert len(results) == n

    @pytest.mark.parametrize(
        "delays", list(itertools.permutations([0.0, 0.02, 0.04]))
    )
    def test_results_indexed_by_listed_position(self, delays):
        actions = [Slow(f"a{i}", d) for i, d in enumerate(delays)]
        results = Parallel(ReduceStrategy.RESULTS, *actions)("in")
        assert [r.output for r in results] == [("a0", "in"), ("a1", "in"), ("a2", "in")]

    def test_error_attributed_to_originating_action(self):
        results = Parallel(
            ReduceStrategy.RESULTS,
            Slow("slow", 0.03),
            Boom("middle failed"),
            Do(add1),
        )(1)
        assert results[0].ok and results[0].output == ("slow", 1)
        assert not results[1].ok and str(results[1].error) == "middle failed"
        assert results[2].ok and results[2].output == 2


# ---------------------------------------------------------------------------
# 4. Failures
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestParallelFailures:
    def test_reference_reducer_surfaces_error(self):
        with pytest.raises(ActionError) as exc_info:
            Parallel(reduce_sum, Do(add1), Boom(), Do(add3))(1)
        assert exc_info.value.output == 5

    def test_failing_sibling_does_not_stop_others(self):
        before, after = Counter(), Counter()
        with pytest.raises(ActionError):
            Parallel(reduce_sum, before, Boom(), after)(1)
        assert before.calls == 1
        assert after.calls == 1

    def test_failed_result_carries_action_output(self):
        results = Parallel(ReduceStrategy.RESULTS, Boom(output=9))(1)
        assert results[0].output == 9
        assert isinstance(results[0].error, ActionError)

    def test_plain_exception_has_no_output(self):
        def explode(_):
            raise RuntimeError("x")

        results = Parallel(ReduceStrategy.RESULTS, explode)(1)
        assert results[0].output is None
        assert isinstance(results[0].error, RuntimeError)

    def test_reduce_may_suppress_errors(self):
        def ok_only(results):
            return [r.output for r in results if r.ok]

        assert Parallel(ok_only, Do(add1), Boom(), Do(add2))(1) == [2, 3]

    def test_barrier_waits_for_slow_action_despite_failure(self):
        slow = Slow("slow", 0.05)
        results = Parallel(ReduceStrategy.RESULTS, Boom(), slow)(1)
        assert results[1].output == ("slow", 1)


# ---------------------------------------------------------------------------
# 5. Built-in reducers
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestBuiltinReducers:
    def test_raise_first_returns_outputs_in_order(self):
        assert _reduce_raise_first([Result(1), Result(2)]) == [1, 2]

    def test_raise_first_raises_first_listed_error(self):
        first, second = ValueError("first"), KeyError("second")
        with pytest.raises(ValueError):
            _reduce_raise_first([Result(1), Result(error=first), Result(error=second)])

    def test_collect_gathers_all_failures(self):
        a, b = ValueError("a"), KeyError("b")
        with pytest.raises(ParallelError) as exc_info:
            _reduce_collect([Result(error=a), Result(1), Result(error=b)])
        assert exc_info.value.failures == [a, b]

    def test_collect_without_failures_returns_outputs(self):
        assert _reduce_collect([Result(1), Result(None)]) == [1, None]

    def test_results_passthrough(self):
        results = [Result(1), Result(error=ValueError())]
        assert _reduce_results(results) is results

    def test_collect_via_parallel(self):
        with pytest.raises(ParallelError) as exc_info:
            Parallel(ReduceStrategy.COLLECT, Boom("a"), Do(add1), Boom("b"))(1)
        assert [str(e) for e in exc_info.value.failures] == ["a", "b"]

    def test_empty_with_builtin(self):
        assert Parallel(ReduceStrategy.RAISE_FIRST)(1) == []


@pytest.mark.unit
class TestResult:
    def test_ok(self):
        assert Result(1).ok
        assert not Result(error=ValueError()).ok

    def test_unwrap_returns_output(self):
        assert Result(3).unwrap() == 3

    def test_unwrap_raises_error(self):
        with pytest.raises(ValueError):
            Result(error=ValueError("x")).unwrap()
