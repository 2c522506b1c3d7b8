#!/usr/bin/env python3
"""Workflow engine walkthrough.

Builds a small order-scoring pipeline out of actions: a typed parse step, a
parallel fan-out of three scorers, a conditional routing step and a flaky
lookup wrapped in Retry.  Retry settings come from ``WORKFLOW_RETRY_*``
variables, optionally loaded from a ``.env`` file; the initial delay and
jitter fall back to a few milliseconds when unset.

    pip install -e ".[examples]"
    WORKFLOW_RETRY_MAX_RETRIES=5 python examples/workflow_demo.py
"""

import logging
import os
import random

from dotenv import load_dotenv

from workflow import (
    ActionError,
    Catch,
    Definition,
    Do,
    ReduceStrategy,
    Result,
    Retry,
    RetryOptions,
)


# ---------------------------------------------------------------------------
# Leaf actions
# ---------------------------------------------------------------------------


def parse(raw: str) -> dict:
    name, _, amount = raw.partition("=")
    if not amount:
        raise ActionError(f"malformed order {raw!r}", output=raw)
    return {"name": name.strip(), "amount": float(amount)}


def size_score(order: dict) -> float:
    return min(order["amount"] / 100.0, 1.0)


def name_score(order: dict) -> float:
    return 0.5 if order["name"].isupper() else 0.1


def flaky_history_score(order: dict) -> float:
    if random.random() < 0.5:
        raise ActionError("history service unavailable")
    return 0.2


def combine(results: list[Result]) -> dict:
    scores = [r.output for r in results if r.ok]
    return {"score": round(sum(scores), 2), "partial": len(scores) < len(results)}


def is_risky(scored: dict) -> bool:
    return scored["score"] > 1.0


def flag(scored: dict) -> str:
    return f"REVIEW score={scored['score']}"


def approve(scored: dict) -> str:
    suffix = " (partial)" if scored["partial"] else ""
    return f"APPROVE score={scored['score']}{suffix}"


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

# Demo-friendly delays, used only when the environment does not set them.
DEMO_RETRY_DEFAULTS = {
    "WORKFLOW_RETRY_INITIAL_DELAY": "0.01",
    "WORKFLOW_RETRY_JITTER": "0.005",
}


def build_flow() -> Definition:
    for key, value in DEMO_RETRY_DEFAULTS.items():
        os.environ.setdefault(key, value)
    retry_options = RetryOptions.from_env()

    return (
        Definition()
        .then(Do(parse))
        .branch(
            combine,
            Do(size_score),
            Do(name_score),
            Retry(Do(flaky_history_score), retry_options),
        )
        .when(is_risky, Do(flag), Do(approve))
    )


def main() -> None:
    load_dotenv()
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)-7s %(name)s: %(message)s")

    flow = build_flow()
    safe_flow = Catch(flow, lambda output, error: f"REJECT {output!r}: {error}")
    orders = ["ACME=250", "bob=40", "garbage", "ZED=90"]

    print("\n-- one at a time --")
    for order in orders:
        print(f"  {order:10} -> {safe_flow(order)}")

    print("\n-- batch run, failures captured --")
    for order, result in zip(orders, flow.run_all(orders, workers=2)):
        status = "OK  " if result.ok else "FAIL"
        print(f"  [{status}] {order:10} -> {result.output if result.ok else result.error}")

    print("\n-- raw parallel results --")
    print(Definition().then(Do(parse)).branch(ReduceStrategy.RESULTS, Do(size_score), Do(name_score)).run("ACME=250"))


if __name__ == "__main__":
    main()
