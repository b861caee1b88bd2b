"""Timeout drill evaluator -- late proofs must be refused or counted as missed."""

from __future__ import annotations

from launchgate.evaluation.classifier import ErrorClass, matches
from launchgate.evaluation.evaluators.base import MISSING_SUMMARY, BaseEvaluator, unexpected_exit
from launchgate.models.result import Evaluation, ExecutionResult


class TimeoutDrillEvaluator(BaseEvaluator):
    """Passes on a deadline/window failure, or a clean exit reporting misses or rejections."""

    def evaluate(self, run: ExecutionResult) -> Evaluation:
        if run.exit_code != 0:
            if matches(run.error_text, ErrorClass.deadline_missed):
                return Evaluation(
                    passed=True,
                    reason="expected timeout/deadline failure observed (non-zero exit)",
                )
            return unexpected_exit(run)

        counters = run.counters
        if counters is None:
            return Evaluation(passed=False, reason=MISSING_SUMMARY)
        if counters.missed_deadlines > 0 or counters.rejected > 0:
            return Evaluation(
                passed=True,
                reason=f"rejected={counters.rejected}, missed_deadlines={counters.missed_deadlines}",
            )
        return Evaluation(passed=False, reason="no missed deadline or rejection observed")
