"""Check aggregation and overall verdict computation.

Combines per-attempt evaluations into CheckRecords according to each
plan's policy, and folds required checks into the bundle verdict.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from launchgate.evaluation.evaluators import evaluate_run
from launchgate.models.result import Attempt, CheckRecord, ExecutionResult
from launchgate.models.scenario import CheckPlan, ScenarioSpec


def check_passed(plan: CheckPlan, attempts: list[Attempt]) -> bool:
    """Decide a check from its attempts.

    "all" requires every planned spec to have run and passed, so a
    primary sub-run that unexpectedly succeeds fails the takeover check
    regardless of the backup sub-run. "first-pass" requires any pass.
    """
    if not attempts:
        return False
    if plan.policy == "first-pass":
        return any(a.evaluation.passed for a in attempts)
    return len(attempts) == len(plan.specs) and all(a.evaluation.passed for a in attempts)


def run_check(
    plan: CheckPlan,
    execute: Callable[[ScenarioSpec], ExecutionResult],
    on_attempt: Callable[[ScenarioSpec, Attempt], None] | None = None,
) -> CheckRecord:
    """Execute a plan's specs in order and build its CheckRecord.

    Under the first-pass policy execution stops at the first passing
    attempt; under "all" every spec runs so each sub-run is recorded.

    Args:
        plan: The check to run.
        execute: Runs one spec and returns its ExecutionResult.
        on_attempt: Optional callback invoked after each evaluated attempt.

    Returns:
        CheckRecord with attempts in execution order.
    """
    attempts: list[Attempt] = []
    for spec in plan.specs:
        run = execute(spec)
        evaluation = evaluate_run(spec.kind, run)
        attempt = Attempt(run=run, evaluation=evaluation)
        attempts.append(attempt)
        if on_attempt is not None:
            on_attempt(spec, attempt)
        if plan.policy == "first-pass" and evaluation.passed:
            break

    return CheckRecord(
        id=plan.id,
        required=plan.required,
        passed=check_passed(plan, attempts),
        attempts=attempts,
    )


def overall_verdict(checks: Iterable[CheckRecord]) -> bool:
    """Logical AND of passed over every required check (vacuously True)."""
    return all(check.passed for check in checks if check.required)
